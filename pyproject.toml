[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "himo"
version = "0.1.0"
description = "Application building blocks: pluggable authentication, password hashing, event buses, structured logging and mail delivery."
requires-python = ">=3.11"
keywords = [
    "authentication",
    "jwt",
    "sessions",
    "password-hashing",
    "bcrypt",
    "argon2id",
    "events",
    "logging",
    "smtp",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: Security",
    "Topic :: Communications :: Email",
    "Topic :: System :: Logging",
    "Typing :: Typed",
]
dependencies = [
    "pyjwt>=2.8",
    "bcrypt>=4.0",
    "pynacl>=1.5",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
]

[tool.hatch.build.targets.wheel]
packages = ["himo"]

[tool.hatch.build.targets.sdist]
include = ["himo", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
target-version = "py311"
line-length = 100

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true
