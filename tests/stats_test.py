from detectgate.core.stats import ScanStats


def test_scan_stats_counts():
    stats = ScanStats()
    stats.inc_active(major=True)
    stats.inc_active()
    stats.inc_active()

    assert stats.vulnerabilities == 3
    assert stats.major_vulnerabilities == 1
    assert stats.minor_vulnerabilities == 2
    assert stats.elapsed_time >= 0
    assert stats.as_dict()['minor_vulnerabilities'] == 2
