[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "krpc"
version = "0.1.0"
description = "A small RPC framework with ZooKeeper service discovery and varint-framed, protobuf-encoded requests"
requires-python = ">=3.10"
dependencies = []
keywords = ["rpc", "zookeeper", "service-discovery", "distributed", "protobuf"]
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
    "Topic :: System :: Distributed Computing",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
krpc-server = "krpc.server:main"
krpc-client = "krpc.client:main"

[tool.hatch.build.targets.wheel]
packages = ["krpc"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
