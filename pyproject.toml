[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wghandshake"
version = "0.1.4"
description = "WireGuard handshake state machine: Noise_IKpsk2_25519_ChaChaPoly_BLAKE2s with cookie-based DoS mitigation"
requires-python = ">=3.10"
keywords = ["wireguard", "noise", "handshake", "vpn", "x25519", "blake2s"]
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
    "Topic :: Security :: Cryptography",
    "Topic :: System :: Networking",
]
dependencies = [
    "pynacl",
]

[project.optional-dependencies]
test = [
    "pytest",
    "hypothesis",
]

[tool.hatch.build.targets.wheel]
packages = ["wghandshake"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
