[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mipsmachine"
version = "0.1.0"
description = "Simulated workstation hardware: a clock with interrupts, a timer, console and disk devices, and a MIPS instruction decoder"
requires-python = ">=3.10"
dependencies = []
keywords = ["mips", "emulator", "simulator", "interrupts", "disk", "operating-systems", "teaching"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mipsmachine"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
