from __future__ import annotations

import socket

import main
from webgrader.config_loader import GraderConfig


def _config(tmp_path, port: int = 3000) -> GraderConfig:
    (tmp_path / "students_project").mkdir()
    return GraderConfig(submissions_dir=tmp_path / "students_project", rubric_text="Logo - 1", port=port)


def test_busy_port_exits_cleanly(tmp_path, capsys, monkeypatch):
    def no_pipeline(*args, **kwargs):
        raise AssertionError("grading must not start without a server")

    monkeypatch.setattr(main, "run_grading_pipeline", no_pipeline)

    with socket.socket() as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen()
        port = blocker.getsockname()[1]

        assert main.run_batch(_config(tmp_path, port)) == 1

    assert f"Error: cannot serve submissions on 127.0.0.1:{port}" in capsys.readouterr().out


def test_bind_error_is_reported(tmp_path, capsys, monkeypatch):
    def refuse(*args, **kwargs):
        raise OSError("Address already in use")

    monkeypatch.setattr(main, "ServerThread", refuse)

    assert main.run_batch(_config(tmp_path)) == 1
    assert "Address already in use" in capsys.readouterr().out


def test_missing_rubric_exits_before_serving(tmp_path, monkeypatch):
    def no_server(*args, **kwargs):
        raise AssertionError("server must not start without a rubric")

    monkeypatch.setattr(main, "ServerThread", no_server)
    config = GraderConfig(submissions_dir=tmp_path)

    assert main.run_batch(config) == 1
