[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "capellaextras"
version = "0.1.0"
description = "Client for the Couchbase Capella v4 management API, with a helper action that builds deferred indexes"
requires-python = ">=3.10"
keywords = ["couchbase", "capella", "indexes", "n1ql", "api-client"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Database :: Front-Ends",
]
dependencies = [
    "requests>=2.30",
    "urllib3>=2.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
]

[tool.hatch.build.targets.wheel]
packages = ["capellaextras"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
