[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "webappserver"
version = "1.9.1"
description = "A small threaded HTTP/1.1 server with sessions, cookies, multipart uploads and static files"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "server", "web", "sessions", "cookies", "static files", "multipart"]
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
webappserver = "webappserver.app:main"

[tool.hatch.build.targets.wheel]
packages = ["webappserver"]

[tool.pytest.ini_options]
addopts = "-ra"
