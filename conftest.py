pytest_plugins = ["browser_fixtures.plugin"]
