[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "oboromi"
version = "0.2.0"
description = "Core building blocks of an ARM64 emulator: MMU, TLB, paged memory and an interpreter CPU"
requires-python = ">=3.10"
dependencies = []
keywords = ["emulator", "arm64", "aarch64", "mmu", "tlb", "interpreter"]
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
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["oboromi"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
