[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "policykit"
version = "0.1.0"
description = "Access-control models and policy rules: definitions, indexed rule storage, role links, a management API and a thread-safe wrapper."
requires-python = ">=3.10"
dependencies = []
keywords = ["access-control", "authorization", "rbac", "acl", "policy"]
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
    "Topic :: Security",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["policykit"]

[tool.pytest.ini_options]
addopts = "-ra"
