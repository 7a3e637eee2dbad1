from importlib.util import module_from_spec, spec_from_file_location
from pathlib import Path


def _load_home_module():
    home_path = Path(__file__).resolve().parents[1] / "Home.py"
    spec = spec_from_file_location("home_module", home_path)
    assert spec and spec.loader
    module = module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_upload_token_changes_when_same_size_content_is_edited() -> None:
    home_module = _load_home_module()

    original = b"Flight Number,Aircraft Type\nAB100,Boeing 737-800\n"
    edited = b"Flight Number,Aircraft Type\nAB101,Boeing 737-800\n"
    assert len(original) == len(edited)

    assert home_module.upload_token("flights.csv", original) != home_module.upload_token("flights.csv", edited)


def test_upload_token_is_stable_for_identical_uploads() -> None:
    home_module = _load_home_module()

    content = b"Flight Number\nAB100\n"

    assert home_module.upload_token("flights.csv", content) == home_module.upload_token("flights.csv", content)
    assert home_module.upload_token("flights.csv", content)[0] == "flights.csv"
