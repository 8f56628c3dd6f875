[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "partsorder"
version = "0.1.0"
description = "A multi-threaded UDP factory server and its procurement client for simulated parts orders"
requires-python = ">=3.10"
dependencies = []
keywords = ["udp", "threads", "client-server", "simulation", "protocol"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
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
test = ["pytest"]

[project.scripts]
partsorder-factory = "partsorder.factory:main"
partsorder-procurement = "partsorder.procurement:main"

[tool.hatch.build.targets.wheel]
packages = ["partsorder"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
