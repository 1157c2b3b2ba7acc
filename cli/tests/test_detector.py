from __future__ import annotations

from ravact.models import ServiceStatus
from ravact.system.detector import Detector, format_bytes, recommended_worker_connections

GB = 1024 ** 3


def _detector(runner, tmp_path, os_release: str | None = None) -> Detector:
    release = tmp_path / "os-release"
    if os_release is not None:
        release.write_text(os_release, encoding="utf-8")
    meminfo = tmp_path / "meminfo"
    meminfo.write_text("MemTotal:        2048000 kB\nMemFree:          512000 kB\n", encoding="utf-8")
    return Detector(runner, os_release=str(release), lsb_release=str(tmp_path / "lsb-release"),
                    meminfo=str(meminfo))


def test_format_bytes() -> None:
    assert format_bytes(512) == "512 B"
    assert format_bytes(1536) == "1.5 KB"
    assert format_bytes(2 * GB) == "2.0 GB"


def test_recommended_worker_connections_scales_with_ram() -> None:
    assert recommended_worker_connections(512 * 1024 ** 2) == 1024
    assert recommended_worker_connections(2 * GB) == 2048
    assert recommended_worker_connections(64 * GB) == 4096


def test_system_info_reads_release_memory_and_disk(runner, tmp_path) -> None:
    runner.on("df", stdout="Filesystem 1B-blocks Used Available Use% Mounted on\n/dev/sda1 42949672960 1 1 1% /\n")
    runner.on("uname", "-r", stdout="6.8.0-45-generic\n")
    detector = _detector(runner, tmp_path, 'ID=ubuntu\nVERSION_ID="24.04"\n')

    info = detector.system_info()

    assert (info.distribution, info.version) == ("ubuntu", "24.04")
    assert info.total_ram == 2048000 * 1024
    assert info.total_disk == 42949672960
    assert info.kernel == "6.8.0-45-generic"


def test_system_info_without_release_files(runner, tmp_path) -> None:
    info = _detector(runner, tmp_path).system_info()

    assert (info.distribution, info.version) == ("unknown", "")
    assert info.total_disk == 0


def test_service_status_maps_systemd_state(runner, tmp_path) -> None:
    runner.on("systemctl", "list-unit-files", stdout="nginx.service enabled enabled\n")
    runner.on("systemctl", "is-active", stdout="failed\n")
    detector = _detector(runner, tmp_path)

    assert detector.service_status("nginx") is ServiceStatus.FAILED


def test_binary_only_tools_report_installed(runner, tmp_path) -> None:
    runner.binaries.add("certbot")
    detector = _detector(runner, tmp_path)

    assert detector.service_status("certbot") is ServiceStatus.INSTALLED
    assert detector.service_status("git") is ServiceStatus.NOT_INSTALLED
    assert not runner.ran("systemctl", "is-active")


def test_primary_ip_falls_back_to_ip_addr(runner, tmp_path) -> None:
    runner.on("ip", "-4", "addr", stdout=(
        "1: lo: <LOOPBACK>\n    inet 127.0.0.1/8 scope host lo\n"
        "2: eth0: <BROADCAST>\n    inet 10.0.0.5/24 brd 10.0.0.255 scope global eth0\n"
    ))
    detector = _detector(runner, tmp_path)

    assert detector.primary_ip() == "10.0.0.5"


def test_primary_ip_unknown(runner, tmp_path) -> None:
    assert _detector(runner, tmp_path).primary_ip() == "N/A"
