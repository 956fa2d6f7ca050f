import argparse
import asyncio
import sys

from app.api.crawler.utils.config import DEFAULT_CONCURRENCY, DEFAULT_MAX_DEPTH, DEFAULT_MAX_PAGES
from app.api.crawler.utils.files import export_results
from app.api.crawler.utils.logger import logger
from app.api.crawler.utils.service import CrawlResults, parse_update_line, run_multi_domain_crawl


def build_arg_parser():
    parser = argparse.ArgumentParser(description="Discover product URLs on e-commerce websites")
    commands = parser.add_subparsers(dest="command", required=True)

    crawl = commands.add_parser("crawl", help="Crawl domains and print updates as JSON lines")
    crawl.add_argument("domains", nargs="+", help="Domains or seed URLs")
    crawl.add_argument("--max-depth", type=int, default=DEFAULT_MAX_DEPTH)
    crawl.add_argument("--max-pages", type=int, default=DEFAULT_MAX_PAGES)
    crawl.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY)
    crawl.add_argument("--output", default=None, help="Write domain -> product URLs as JSON to this file")

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    export = commands.add_parser("export", help="Build the JSON export from a saved update stream")
    export.add_argument("stream", help="File with one JSON update per line")
    export.add_argument("--output", required=True)

    return parser


def print_update(update):
    sys.stdout.write(update.to_line())
    sys.stdout.flush()


def crawl(args):
    if args.max_depth < 0 or args.max_pages < 1 or args.concurrency < 1:
        logger.error("max-depth must be >= 0, max-pages and concurrency must be >= 1")
        return 2

    logger.info("Starting crawler...")
    results = asyncio.run(
        run_multi_domain_crawl(
            args.domains, args.max_depth, args.max_pages, args.concurrency, sink=print_update
        )
    )

    logger.info("Crawling Complete - Summary:")
    for domain, urls in results.items():
        logger.info(f"{domain}: {len(urls)} product URLs found")

    if args.output:
        export_results(results, args.output)
    return 0


def export(args):
    results = CrawlResults()
    with open(args.stream, 'r') as f:
        for line in f:
            update = parse_update_line(line)
            if update is not None:
                results.apply(update)
    export_results(results.product_urls, args.output)
    return 0


def serve(args):
    import uvicorn
    from app import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    handlers = {"crawl": crawl, "serve": serve, "export": export}
    return handlers[args.command](args)


if __name__ == "__main__":
    raise SystemExit(main())
