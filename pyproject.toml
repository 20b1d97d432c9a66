[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kmodkit"
version = "0.1.0"
description = "Kernel module tooling: binary module indexes, depmod.d configuration, symbol dependencies, static device nodes and modprobe helpers"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "kernel",
    "modules",
    "depmod",
    "modprobe",
    "module-index",
    "static-nodes",
    "linux",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System Kernels :: Linux",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
kmodkit-static-nodes = "kmodkit.static_nodes:main"

[tool.hatch.build.targets.wheel]
packages = ["kmodkit"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
