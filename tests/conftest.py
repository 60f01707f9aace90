import csv

import pytest

from statpad import settings
from statpad.logging_utils import reset_warn_once_cache


@pytest.fixture(autouse=True)
def _fresh_warn_once():
    reset_warn_once_cache()
    yield
    reset_warn_once_cache()


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DATA_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def write_csv(data_dir):
    def _write(name, header, rows):
        path = data_dir / name
        with open(path, "w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle)
            writer.writerow(header)
            writer.writerows(rows)
        return path

    return _write


@pytest.fixture
def client():
    from statpad.app import app

    app.testing = True
    with app.test_client() as client:
        yield client
