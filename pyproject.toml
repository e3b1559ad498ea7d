[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "httptun"
version = "0.1.0"
description = "Carry IP packets between two TUN devices over plain HTTP requests"
requires-python = ">=3.10"
dependencies = []
keywords = ["tun", "tunnel", "http", "vpn", "networking"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
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
httptun-server = "httptun.server:main"
httptun-client = "httptun.client:main"

[tool.hatch.build.targets.wheel]
packages = ["httptun"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
