[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cocos"
version = "0.1.0"
description = "SEV-SNP attestation check configuration, policy editing, RPC error decoding, agent log handling and server shutdown helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["attestation", "sev-snp", "attestation-policy", "confidential-computing", "logging"]
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
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cocos"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
