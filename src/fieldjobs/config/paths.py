from pathlib import Path


def package_root() -> Path:
    return Path(__file__).resolve().parents[1]


def data_root() -> Path:
    return package_root() / "data"


def contracts_root() -> Path:
    return package_root() / "contracts"
