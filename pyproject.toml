[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cwmpacs"
version = "0.1.0"
description = "A small TR-069 (CWMP) auto-configuration server that answers CPE Inform sessions over HTTP/SOAP"
requires-python = ">=3.10"
dependencies = [
    "pymongo",
]
keywords = ["tr-069", "cwmp", "acs", "soap", "cpe", "device management"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-mock",
]

[project.scripts]
cwmpd = "cwmpacs.server:main"

[tool.hatch.build.targets.wheel]
packages = ["cwmpacs"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
