[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rpcware"
version = "0.1.0"
description = "Rate limiting and structured logging interceptors for RPC servers and clients"
requires-python = ">=3.10"
keywords = ["rpc", "grpc", "middleware", "interceptor", "logging", "ratelimit", "protobuf"]
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
    "Topic :: System :: Logging",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "protobuf",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["rpcware"]

[tool.pytest.ini_options]
addopts = "-ra"
