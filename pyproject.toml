[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "agentswitcher"
version = "0.1.0"
description = "Terminal chat front end that keeps one conversation going across several coding-agent command-line tools."
requires-python = ">=3.10"
keywords = ["terminal", "tui", "agents", "chat", "sqlite", "cli"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Console :: Curses",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development",
]
dependencies = [
    "rich",
    "blessed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
agentswitcher = "agentswitcher.main:main"

[tool.hatch.build.targets.wheel]
packages = ["agentswitcher"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
