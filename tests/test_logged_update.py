import pytest

from maintenance.logged_update import run_logged_update

from .conftest import FakeStore


def test_first_run_records_key():
    db = FakeStore()
    calls = []

    assert run_logged_update(db, "AddInterwiki", lambda: calls.append(1) or "done") == "done"
    assert calls == [1]
    assert "AddInterwiki" in db.update_keys


def test_applied_key_skips_update(capsys):
    db = FakeStore()
    db.record_update_key("AddInterwiki")
    calls = []

    assert run_logged_update(db, "AddInterwiki", lambda: calls.append(1), skipped_message="RFC and PMID already added") is None
    assert calls == []
    assert "[INFO] RFC and PMID already added" in capsys.readouterr().out


def test_force_reruns():
    db = FakeStore()
    db.record_update_key("AddInterwiki")
    calls = []

    run_logged_update(db, "AddInterwiki", lambda: calls.append(1), force=True)
    assert calls == [1]


def test_failed_update_is_not_recorded():
    db = FakeStore()

    def boom():
        raise RuntimeError("write failed")

    with pytest.raises(RuntimeError):
        run_logged_update(db, "AddInterwiki", boom)
    assert db.update_keys == {}
