import asyncio
import json
import os

import pytest
from fastapi.testclient import TestClient

from app import create_app
from app.api.crawler import routes
from app.api.crawler.utils import files, service
from app.api.crawler.utils.models import CrawlerRequest


@pytest.fixture
def client(monkeypatch, tmp_path, make_page, fake_fetcher):
    pages = {
        "https://x.test/": make_page("/product/1", "/category/a"),
        "https://x.test/product/1": make_page(),
        "https://x.test/category/a": make_page(),
    }
    monkeypatch.setattr(files, "OUTPUT_DIR", tmp_path)
    monkeypatch.setattr(service, "PageFetcher", lambda: fake_fetcher(pages))
    return TestClient(create_app())


def _start(client, domains):
    response = client.post(
        "/api/crawler/",
        json={"domains": domains, "maxDepth": 1, "maxPages": 10, "concurrency": 2},
    )
    assert response.status_code == 200
    lines = [json.loads(line) for line in response.text.splitlines() if line.strip()]
    return response.headers["x-job-id"], lines


def test_crawl_streams_one_json_update_per_line(client):
    job_id, lines = _start(client, ["https://x.test/", "https://down.test/"])

    assert all("domain" in line for line in lines)
    assert lines[0] == {"domain": "https://x.test/", "status": "pending", "progress": 0.0}
    final = {}
    for line in lines:
        final.setdefault(line["domain"], {}).update(line)
    assert final["https://x.test/"]["status"] == "completed"
    assert final["https://x.test/"]["productUrls"] == ["https://x.test/product/1"]
    assert final["https://down.test/"]["status"] == "error"
    assert final["https://down.test/"]["productUrls"] == []


def test_finished_job_exposes_status_results_and_download(client):
    job_id, _ = _start(client, ["https://x.test/"])

    status = client.get(f"/api/crawler/status/{job_id}").json()["status"]
    assert status["status"] == "completed"
    assert status["domains"]["https://x.test/"]["status"] == "completed"

    results = client.get(f"/api/crawler/results/{job_id}").json()
    assert results == {"job_id": job_id, "results": {"https://x.test/": ["https://x.test/product/1"]}}

    download = client.get(f"/api/crawler/download/{job_id}")
    assert download.status_code == 200
    assert download.json() == {"https://x.test/": ["https://x.test/product/1"]}
    assert download.text.startswith("{\n  ")


def test_unknown_jobs_return_404(client):
    assert client.get("/api/crawler/status/nope").status_code == 404
    assert client.get("/api/crawler/results/nope").status_code == 404
    assert client.get("/api/crawler/download/nope").status_code == 404
    assert client.post("/api/crawler/stop/nope").status_code == 404


@pytest.mark.parametrize(
    "body",
    [
        {"domains": []},
        {"domains": ["  "]},
        {"domains": ["https://x.test/"], "maxPages": 0},
        {"domains": ["https://x.test/"], "maxDepth": -1},
        {"domains": ["https://x.test/"], "concurrency": 0},
    ],
)
def test_invalid_requests_are_rejected(client, body):
    assert client.post("/api/crawler/", json=body).status_code == 422


def test_dropped_stream_still_finalizes_the_job(client):
    async def scenario():
        response = await routes.start_crawler(
            CrawlerRequest(domains=["https://x.test/"], maxDepth=1, maxPages=10, concurrency=1)
        )
        job_id = response.headers["x-job-id"]
        stream = response.body_iterator
        first = await stream.__anext__()
        await stream.aclose()
        return job_id, json.loads(first)

    job_id, first = asyncio.run(scenario())

    assert first["status"] == "pending"
    assert job_id not in routes.active_jobs
    status = files.read_status(job_id)
    assert status["status"] == "cancelled"
    assert os.path.exists(files.results_path(job_id))
    assert client.get(f"/api/crawler/results/{job_id}").json()["results"] == {"https://x.test/": []}


def test_health_reports_version(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": "1.0.0"}
    assert client.get("/openapi.json").json()["info"]["title"] == "Product URL Discovery Crawler"
