[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nexusrv"
version = "0.0.1"
description = "Encoder, decoder and tools for Nexus-RV processor trace messages"
requires-python = ">=3.10"
dependencies = []
keywords = ["nexus", "risc-v", "trace", "decoder", "encoder", "debugging"]
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
    "Topic :: Software Development :: Debuggers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
nexusrv-dump = "nexusrv.dump:main"
nexusrv-assemble = "nexusrv.assemble:main"

[tool.hatch.build.targets.wheel]
packages = ["nexusrv"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
