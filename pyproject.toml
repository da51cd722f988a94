[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "memredis"
version = "0.1.0"
description = "An in-memory Redis-like data store for tests: direct access to typed keys, set and sorted set commands, and MULTI/EXEC transactions."
requires-python = ">=3.10"
dependencies = []
keywords = ["redis", "in-memory", "testing", "sorted-set", "key-value"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Database :: Database Engines/Servers",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["memredis"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
