import setuptools

setuptools.setup(
    name="browser_fixtures",
    version="0.1.0",
    description="pytest fixtures for browser automation suites: local HTTP/HTTPS fixture servers, environment-driven browser launch and conditional test registration.",
    author="Chase McDonald",
    author_email="chasecmcdonald@gmail.com",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    package_data={
        "browser_fixtures": ["assets/*", "assets/cached/*"],
    },
    install_requires=[
        "flask",
        "werkzeug",
        "cryptography",
        "pillow",
        "pytest>=8.0",
        "playwright>=1.49",
        "pytest-playwright>=0.6",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "playwright>=1.49",
            "pytest-playwright>=0.6",
            "pytest-timeout>=2.3",
        ],
    },
)
