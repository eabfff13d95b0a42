[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "canopen402"
version = "0.1.0"
description = "CiA 402 power state machine, layer status reporting and CANopen chain configuration parsing"
requires-python = ">=3.10"
dependencies = []
keywords = ["canopen", "cia402", "ds402", "can", "drive", "state machine", "sync"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN) :: CANopen",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["canopen402"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
