[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "minnowstack"
version = "0.1.0"
description = "Pieces of a user-space TCP/IP stack: byte streams, reassembly, a TCP receiver and an ARP-resolving network interface"
requires-python = ">=3.10"
dependencies = []
keywords = ["tcp", "ip", "arp", "ethernet", "networking", "reassembler", "byte-stream"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
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

[tool.hatch.build.targets.wheel]
packages = ["minnowstack"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
