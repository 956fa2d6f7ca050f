tags_metadata = [
    {
        "name": "crawler",
        "description": "Crawl e-commerce domains for product URLs and stream progress as newline-delimited JSON.",
    },
    {
        "name": "health",
        "description": "Liveness check.",
    },
]
