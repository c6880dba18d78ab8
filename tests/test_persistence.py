from pathlib import Path

from beatroute.persistence.filesystem import FileStorage


def test_file_storage_creates_run_directory(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="route_North Beat/1")

    assert run_dir.exists()
    assert run_dir.is_dir()
    assert run_dir.parent == tmp_path.resolve() / "outputs"
    assert run_dir.name.startswith("route_North_Beat_1_")


def test_file_storage_run_directories_are_unique(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    first = storage.make_run_directory()
    second = storage.make_run_directory()

    assert first != second


def test_file_storage_writes_json_csv_and_bytes(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="route_test")

    summary_path = run_dir / "summary.json"
    route_path = run_dir / "route.csv"
    workbook_path = run_dir / "route.xlsx"

    storage.write_json(summary_path, {"hello": "world"})
    storage.write_csv(route_path, "a,b\n1,2\n")
    storage.write_bytes(workbook_path, b"PK\x03\x04")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert route_path.read_text(encoding="utf-8") == "a,b\n1,2\n"
    assert workbook_path.read_bytes() == b"PK\x03\x04"
