[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "titan"
version = "0.4.0"
description = "RESP protocol codec, sorted-set key layout, metrics, a status server and a command-checking client for a Redis-compatible server"
requires-python = ">=3.10"
dependencies = []
keywords = ["redis", "resp", "protocol", "metrics", "prometheus", "sorted-set", "integration-testing"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
titan-autotest = "titan.autoclient:main"

[tool.hatch.build.targets.wheel]
packages = ["titan"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
