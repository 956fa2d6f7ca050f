import json
import os
from urllib.parse import urlparse

import pandas as pd

from .config import OUTPUT_DIR
from .logger import logger

OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
logger.info(f'Folder Created {OUTPUT_DIR}')


def domain_file_name(domain):
    netloc = urlparse(domain if '://' in domain else 'https://' + domain).netloc
    return netloc.replace('.', '_').replace(':', '_')


def status_path(job_id):
    return os.path.join(OUTPUT_DIR, f"{job_id}_status.json")


def results_path(job_id):
    return os.path.join(OUTPUT_DIR, f"{job_id}_results.json")


def write_status(job_id, status_data):
    with open(status_path(job_id), 'w') as f:
        json.dump(status_data, f)


def read_status(job_id):
    path = status_path(job_id)
    if not os.path.exists(path):
        return None
    with open(path, 'r') as f:
        return json.load(f)


def export_results(results, path):
    """
    Write the domain -> product URLs mapping as indented JSON
    """
    with open(path, 'w') as f:
        json.dump(results, f, indent=2)
    logger.info(f"Results exported to {path}")


def save_results(job_id, results):
    """
    Save the results of a job: one JSON export plus one CSV per domain

    Args:
        job_id (str): job_id
        results (dict): domain -> list of product URLs
    """
    export_results(results, results_path(job_id))

    for domain, urls in results.items():
        domain_file = os.path.join(OUTPUT_DIR, f"{job_id}_{domain_file_name(domain)}.csv")
        domain_df = pd.DataFrame({'product_url': urls})
        domain_df.to_csv(domain_file, index=False)
        logger.info(f"Domain results saved to {domain_file}")


def load_domain_csv(job_id, domain):
    file_path = os.path.join(OUTPUT_DIR, f'{job_id}_{domain_file_name(domain)}.csv')
    if not os.path.exists(file_path):
        return []
    urls_df = pd.read_csv(file_path)
    return urls_df['product_url'].dropna().tolist()
