import re

from vpsalloc.cli import main
from vpsalloc.ip_manager import IPManager


def _allocated(output: str, pool: int) -> str:
    match = re.search(rf"Allocated IP from pool {pool}: (\S+)", output)
    assert match is not None
    return match.group(1)


def _remaining(output: str, pool: int) -> int:
    match = re.search(rf"Pool {pool} has (\d+) available IPs remaining", output)
    assert match is not None
    return int(match.group(1))


def test_first_run_succeeds_and_allocates_lowest(tmp_path, capsys):
    assert main(["--data-dir", str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert _allocated(out, 1) == "192.168.1.1"
    assert _allocated(out, 2) == "192.168.2.10"
    assert "IP pools destroyed, snapshots saved" in out


def test_remaining_counts_match_pool_sizes(tmp_path, capsys):
    assert main(["--data-dir", str(tmp_path)]) == 0
    out = capsys.readouterr().out
    pool1 = IPManager("192.168.1.100", tmp_path / "fresh1")
    pool2 = IPManager("192.168.2.10-50", tmp_path / "fresh2")
    assert _remaining(out, 1) == len(pool1.available_ips()) - 1
    assert _remaining(out, 2) == len(pool2.available_ips()) - 1


def test_snapshot_holds_pool1_allocation_written_last(tmp_path, capsys):
    assert main(["--data-dir", str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert (tmp_path / "ip_snapshot.dat").exists()
    restored = IPManager("192.168.1.100", tmp_path)
    assert restored.allocated_ips() == [_allocated(out, 1)]


def test_second_run_does_not_reuse_first_allocation(tmp_path, capsys):
    assert main(["--data-dir", str(tmp_path)]) == 0
    first = _allocated(capsys.readouterr().out, 1)
    assert main(["--data-dir", str(tmp_path)]) == 0
    second = _allocated(capsys.readouterr().out, 1)
    assert second != first
    restored = IPManager("192.168.1.100", tmp_path)
    assert set(restored.allocated_ips()) == {first, second}


def test_unusable_data_dir_reports_error(tmp_path, capsys):
    missing = tmp_path / "no" / "such" / "dir"
    assert main(["--data-dir", str(missing)]) == 1
    out = capsys.readouterr().out
    assert "ERROR: Failed to create snapshot directory" in out


def test_corrupt_snapshot_reports_error(tmp_path, capsys):
    (tmp_path / "ip_snapshot.dat").write_bytes(b"\x05\x00")
    assert main(["--data-dir", str(tmp_path)]) == 1
    assert "ERROR:" in capsys.readouterr().out