import builtins

from avlstore import main as cli


def test_smoke_test_reports_records(csv_file, tmp_path, capsys):
    cli.run_ingest_and_smoke_test(csv_file, str(tmp_path / "smoke.dat"))
    out = capsys.readouterr().out
    assert "Ingested 3 records" in out
    assert "Sample GET at 3: (3, 1.5)" in out


def test_smoke_test_with_empty_csv(tmp_path, capsys):
    path = tmp_path / "empty.csv"
    path.write_text("key,value\n", encoding="utf-8")
    cli.run_ingest_and_smoke_test(str(path), str(tmp_path / "empty.dat"))
    assert "No records loaded." in capsys.readouterr().out


def test_interactive_shell(monkeypatch, capsys):
    commands = iter(["i 5", "i 3", "i 8", "r 4", "r 3", "x", "p", "e"])
    monkeypatch.setattr(builtins, "input", lambda: next(commands))
    cli.interactive_shell()
    out = capsys.readouterr().out
    assert "4 not found" in out
    assert "type in a valid operation" in out
    assert "[(5(8))]" in out
    assert "5 8" in out
    assert "height: 2" in out


def test_shell_flag_dispatches(monkeypatch):
    called = []
    monkeypatch.setattr(cli, "interactive_shell", lambda: called.append(True))
    cli.main(["--shell"])
    assert called == [True]
