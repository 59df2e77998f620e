"""Tests for aulab.cli module."""

import pytest
from aulab.cli import build_parser, main

from conftest import au_header


def test_run_command(tmp_path, capsys):
    src = tmp_path / "in.au"
    dst = tmp_path / "out.au"
    src.write_bytes(au_header() + bytes(range(1, 41)))
    rc = main(["run", str(src), str(dst), "4", "100", "repeat", "--seed", "3"])
    assert rc == 0
    assert dst.read_bytes() == src.read_bytes()
    out = capsys.readouterr().out
    assert "Processing file... done." in out
    assert "Task completed in" in out


def test_run_command_byte_mode(tmp_path):
    src = tmp_path / "in.au"
    dst = tmp_path / "out.au"
    src.write_bytes(au_header() + b"\x05")
    assert main(["run", str(src), str(dst), "512", "0", "--byte"]) == 0
    assert dst.read_bytes() == au_header() + b"\x00"


def test_unknown_mode_falls_back_to_silent(tmp_path):
    src = tmp_path / "in.au"
    dst = tmp_path / "out.au"
    src.write_bytes(au_header() + b"abcd")
    assert main(["run", str(src), str(dst), "4", "0", "whatever"]) == 0
    assert dst.read_bytes()[40:] == bytes(4)


@pytest.mark.parametrize("argv", [["4", "101"], ["4", "-1"], ["0", "50"]])
def test_run_rejects_bad_values(tmp_path, argv):
    with pytest.raises(SystemExit) as ei:
        main(["run", str(tmp_path / "in.au"), str(tmp_path / "out.au")] + argv)
    assert ei.value.code == 2


def test_run_missing_input_returns_error(tmp_path):
    rc = main(["run", str(tmp_path / "nope.au"), str(tmp_path / "out.au"), "4", "50"])
    assert rc == 1


def test_batch_command(tmp_path):
    in_root = tmp_path / "in"
    in_root.mkdir()
    (in_root / "x.au").write_bytes(au_header() + bytes(16))
    plan = tmp_path / "plan.yaml"
    plan.write_text("profiles:\n  - {name: half, mode: repeat, percent: 50, packet_size: 4}\n", encoding="utf-8")
    rc = main(["batch", "--in-root", str(in_root), "--out-root", str(tmp_path / "out"),
               "--plan", str(plan), "--workers", "1", "--seed", "2"])
    assert rc == 0
    assert (tmp_path / "out" / "half" / "x.au").exists()
    assert (tmp_path / "out" / "half" / "x.au.metadata.json").exists()


def test_batch_rejects_bad_plan(tmp_path):
    plan = tmp_path / "plan.yaml"
    plan.write_text("profiles: []\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        main(["batch", "--in-root", str(tmp_path), "--out-root", str(tmp_path / "o"), "--plan", str(plan)])


@pytest.mark.parametrize(
    "body",
    [
        "profiles:\n  - {name: a, percent: null, packet_size: 4}\n",
        "profiles:\n  - just-a-name\n",
        "profiles: [{name: a\n",
    ],
)
def test_batch_malformed_plan_is_a_usage_error(tmp_path, body):
    plan = tmp_path / "plan.yaml"
    plan.write_text(body, encoding="utf-8")
    with pytest.raises(SystemExit) as ei:
        main(["batch", "--in-root", str(tmp_path), "--out-root", str(tmp_path / "o"), "--plan", str(plan)])
    assert ei.value.code == 2


@pytest.mark.parametrize(
    "argv",
    [
        ["run", "in.au", "out.au", "4", "50", "--log-dir", "logs"],
        ["batch", "--in-root", "i", "--out-root", "o", "--plan", "p.yaml", "--log-dir", "logs"],
    ],
)
def test_log_dir_accepted_by_both_commands(argv):
    assert build_parser().parse_args(argv).log_dir == "logs"
