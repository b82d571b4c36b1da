[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dnspipe"
version = "0.1.0"
description = "Building blocks for an asyncio DNS query pipeline, plus server probes and config tools"
requires-python = ">=3.10"
keywords = ["dns", "pipeline", "cache", "edns0", "padding", "ptr", "probe"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Framework :: AsyncIO",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
]
dependencies = [
    "dnspython>=2.4",
    "pyyaml>=6.0",
    "cryptography>=41.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "pytest-asyncio>=0.23",
]

[project.scripts]
dnspipe = "dnspipe.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["dnspipe"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
