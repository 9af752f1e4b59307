[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "octorealm"
version = "0.1.0"
description = "Game state, networking and an authoritative server for a small multiplayer arena game"
requires-python = ">=3.10"
keywords = ["game", "multiplayer", "server", "udp", "arena"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
]
dependencies = [
    "pyyaml",
    "msgpack",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
octorealm-server = "octorealm.server:main"

[tool.hatch.build.targets.wheel]
packages = ["octorealm"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
