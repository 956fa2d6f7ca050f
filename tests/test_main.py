import json

import main
from app.api.crawler.utils import service


def test_crawl_command_prints_updates_and_writes_export(monkeypatch, tmp_path, capsys, make_page, fake_fetcher):
    pages = {
        "https://x.test/": make_page("/product/1"),
        "https://x.test/product/1": make_page(),
    }
    monkeypatch.setattr(service, "PageFetcher", lambda: fake_fetcher(pages))
    output = tmp_path / "results.json"

    code = main.main(["crawl", "https://x.test/", "--max-depth", "1", "--output", str(output)])

    assert code == 0
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert lines[-1]["status"] == "completed"
    assert json.loads(output.read_text()) == {"https://x.test/": ["https://x.test/product/1"]}


def test_crawl_command_rejects_bad_limits(tmp_path):
    assert main.main(["crawl", "https://x.test/", "--max-pages", "0"]) == 2


def test_export_command_skips_malformed_lines(tmp_path):
    stream = tmp_path / "stream.ndjson"
    stream.write_text(
        "\n".join(
            [
                '{"domain": "https://a.test/", "status": "pending", "progress": 0}',
                "garbage",
                '{"domain": "https://a.test/", "productUrls": ["https://a.test/p/1"], "progress": 10}',
                '{"domain": "https://b.test/", "status": "error", "error": "boom", "productUrls": []}',
            ]
        )
    )
    output = tmp_path / "results.json"

    assert main.main(["export", str(stream), "--output", str(output)]) == 0
    assert json.loads(output.read_text()) == {"https://a.test/": ["https://a.test/p/1"], "https://b.test/": []}
