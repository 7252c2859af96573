[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dxrpc"
version = "0.1.0"
description = "XML-RPC values, client and server with asyncio and aiohttp"
requires-python = ">=3.10"
dependencies = [
    "aiohttp",
]
keywords = ["xml-rpc", "xmlrpc", "rpc", "client", "server", "asyncio", "aiohttp"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Framework :: AsyncIO",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
dxrpc-demo = "dxrpc.demo:main"

[tool.hatch.build.targets.wheel]
packages = ["dxrpc"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
