from blog_feed_aggregator.cli import main
from blog_feed_aggregator.storage import FrameStore


def _write_config(tmp_path):
    data_dir = tmp_path / "data"
    cfg = tmp_path / "config.yaml"
    cfg.write_text(f"storage:\n  output_dir: '{data_dir.as_posix()}'\n", encoding="utf-8")
    return cfg, data_dir


def _write_sources(tmp_path):
    sources = tmp_path / "sources.yaml"
    sources.write_text(
        "official_feeds:\n"
        "  - label: One\n"
        "    url: https://one.example/feed\n"
        "  - label: Two\n"
        "    url: https://two.example/rss\n",
        encoding="utf-8",
    )
    return sources


def test_sync_official_dry_run(tmp_path, capsys):
    cfg, data_dir = _write_config(tmp_path)
    sources = _write_sources(tmp_path)

    code = main(["--config", str(cfg), "sync-official", "--sources", str(sources), "--dry-run"])

    assert code == 0
    assert "Would add: 2" in capsys.readouterr().out
    assert FrameStore.open(data_dir).list_sources() == []


def test_sync_official_writes_store(tmp_path, capsys):
    cfg, data_dir = _write_config(tmp_path)
    sources = _write_sources(tmp_path)

    assert main(["--config", str(cfg), "sync-official", "--sources", str(sources)]) == 0
    assert main(["--config", str(cfg), "sync-official", "--sources", str(sources)]) == 0

    out = capsys.readouterr().out
    assert "Added: 2" in out
    assert "Added: 0 | Existing: 2" in out
    assert {s.feed_url for s in FrameStore.open(data_dir).list_sources()} == {
        "https://one.example/feed",
        "https://two.example/rss",
    }


def test_reconcile(tmp_path, capsys):
    cfg, _ = _write_config(tmp_path)

    assert main(["--config", str(cfg), "reconcile"]) == 0
    assert "Feeds reconciled: 0" in capsys.readouterr().out
