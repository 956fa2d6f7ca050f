import asyncio
import os
import uuid
from contextlib import aclosing
from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse, StreamingResponse
from .utils.models import CrawlerRequest, DomainRunStatus, JobStatus, CrawlerResults, StopResponse
from .utils import files
from .utils.logger import logger
from .utils.service import CrawlResults, stream_crawl_updates


crawler_api = APIRouter()

# job_id -> stop event of the crawls still streaming
active_jobs = dict()


@crawler_api.post('/')
async def start_crawler(crawler_request: CrawlerRequest):
    """
    Start crawling and stream one JSON update per line until every domain is finished
    """
    job_id = str(uuid.uuid4())
    stop_event = asyncio.Event()
    active_jobs[job_id] = stop_event

    files.write_status(
        job_id,
        {
            "job_id": job_id,
            "status": "running",
            "request_domain": crawler_request.domains,
            "domains": {},
        },
    )
    logger.info(f"Job {job_id} started for {len(crawler_request.domains)} domains")

    async def updates():
        results = CrawlResults()
        try:
            async with aclosing(
                stream_crawl_updates(
                    crawler_request.domains,
                    crawler_request.max_depth,
                    crawler_request.max_pages,
                    crawler_request.concurrency,
                    stop_event=stop_event,
                )
            ) as stream:
                async for update in stream:
                    results.apply(update)
                    yield update.to_line()
        finally:
            active_jobs.pop(job_id, None)
            # runs on client disconnect too, so partial results are kept
            statuses = results.statuses
            finished = bool(statuses) and all(
                DomainRunStatus(entry["status"]).is_terminal for entry in statuses.values()
            )
            files.save_results(job_id, results.product_urls)
            files.write_status(
                job_id,
                {
                    "job_id": job_id,
                    "status": "completed" if finished and not stop_event.is_set() else "cancelled",
                    "request_domain": crawler_request.domains,
                    "domains": statuses,
                },
            )
            logger.info(f"Job {job_id} finished")

    return StreamingResponse(updates(), media_type="application/x-ndjson", headers={"X-Job-Id": job_id})


@crawler_api.post('/stop/{job_id}', response_model=StopResponse)
async def stop_crawler(job_id: str):
    stop_event = active_jobs.get(job_id)
    if stop_event is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} is not running")
    stop_event.set()
    return StopResponse(job_id=job_id, status="success", message="Stop requested")


@crawler_api.get("/status/{job_id}", response_model=JobStatus)
async def get_job_status(job_id: str):
    """
    Get the status of a crawling job
    """
    status_data = files.read_status(job_id)
    if status_data is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return JobStatus(status=status_data)


@crawler_api.get('/results/{job_id}')
async def get_job_results(job_id: str):
    status_data = files.read_status(job_id)
    if status_data is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")

    if status_data["status"] == "running":
        return {
            "job_id": job_id,
            "status": status_data["status"],
            "message": f"Job is {status_data['status']}, results not available yet",
        }
    results = {}
    for domain in status_data.get('request_domain', []):
        results[domain] = files.load_domain_csv(job_id, domain)

    return CrawlerResults(job_id=job_id, results=results)


@crawler_api.get('/download/{job_id}')
async def download_results(job_id: str):
    path = files.results_path(job_id)
    if not os.path.exists(path):
        raise HTTPException(status_code=404, detail=f"Results for job {job_id} not found")
    return FileResponse(path, media_type="application/json", filename=f"product-urls-{job_id}.json")
