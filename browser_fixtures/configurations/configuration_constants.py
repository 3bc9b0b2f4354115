from __future__ import annotations

import dataclasses


@dataclasses.dataclass(frozen=True)
class Products:
    Chromium = "Chromium"
    Firefox = "firefox"


@dataclasses.dataclass(frozen=True)
class EnvVars:
    Product = "PRODUCT"
    ProductFallbacks = ("PUPPETEER_PRODUCT", "BROWSER_PRODUCT")
    AlternativeInstall = "ALT_INSTALL"
    Headless = "HEADLESS"
    Binary = "BINARY"
    ExtraLaunchOptions = "EXTRA_LAUNCH_OPTIONS"
    DumpIO = "DUMPIO"
    Coverage = "COVERAGE"


@dataclasses.dataclass(frozen=True)
class ServerDefaults:
    # The TLS server always listens on Port + 1
    Port = 8907
    Host = "localhost"
    BindHost = "127.0.0.1"
    CrossOriginHost = "127.0.0.1"
    EmptyPage = "/empty.html"
    CacheSubdir = "cached"


@dataclasses.dataclass(frozen=True)
class CacheHeaders:
    Cached = "public, max-age=31536000"
    Uncached = "no-cache, no-store"
