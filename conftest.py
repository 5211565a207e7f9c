pytest_plugins = ["pytester", "pwlifecycle.plugin"]
