# loader.py
#
# Project: Weighted PageRank
#
# Description:
#   Load a PropertyGraph from JSON graph documents stored in a local file, a
#   local directory of shards, or a Google Cloud Storage bucket prefix.
#
#   Document format (one per file; shards are merged):
#       {"nodes":         [{"id": 0, "labels": ["Profile"]}, ...],
#        "relationships": [{"source": 0, "target": 1, "type": "FOLLOWS"}, ...]}
#
#   Auto-detection:
#     - `source` is an existing file      → read that file.
#     - `source` is an existing directory → read every *.json shard in it.
#     - otherwise                          → treat `source` as a GCS bucket.
#
#   GCS download strategies (selectable via `method`):
#     "thread_pool"      — ThreadPoolExecutor + blob.download_to_file() + tqdm.
#     "transfer_manager" — transfer_manager.download_many(), one blocking call.
#     "sequential"       — blob.download_as_bytes() one at a time + tqdm.
#     "http_pool"        — requests.Session with keep-alive against the public
#                          storage.googleapis.com endpoint + ThreadPoolExecutor.
#
# References:
#   [1] Google Cloud Storage Python Client — transfer_manager module
#       https://cloud.google.com/python/docs/reference/storage/latest/google.cloud.storage.transfer_manager
#   [2] Downloading objects from GCS
#       https://cloud.google.com/storage/docs/downloading-objects#download-object-python

import io
import json
import os
from concurrent.futures import ThreadPoolExecutor, as_completed

from tqdm import tqdm

from weighted_pagerank.graph import PropertyGraph
from weighted_pagerank.utils import (
    Timer, default_workers, is_verbose, print_stage, print_step, print_success, print_summary_box,
)

SHARD_SUFFIX = '.json'
METHODS = ("thread_pool", "transfer_manager", "sequential", "http_pool")


def parse_document(data, name="<document>"):
    """Decode one JSON graph document (bytes or str)."""
    if isinstance(data, bytes):
        data = data.decode('utf-8')
    try:
        doc = json.loads(data)
    except json.JSONDecodeError as e:
        raise ValueError(f"{name}: not a valid graph document ({e})") from e
    if not isinstance(doc, dict):
        raise ValueError(f"{name}: expected a JSON object with nodes / relationships")
    return doc


def _progress(total):
    return tqdm(
        total=total,
        desc="  Downloading",
        unit="file",
        bar_format="  {l_bar}{bar:30}{r_bar}",
        ncols=90,
        disable=not is_verbose(),
    )


def _summarize(graph, source, shards, method=None):
    stats = {
        "Source": source,
        "Shards": shards,
        "Nodes": graph.node_count(),
        "Relationships": graph.relationship_count(),
    }
    if method:
        stats["Method"] = method
    print_summary_box("Graph Load Summary", stats)


# ===================================================================
# Local reading
# ===================================================================

def _read_and_parse(filepath):
    """Read a single shard from disk and return (name, document)."""
    with open(filepath, 'r') as f:
        return os.path.basename(filepath), parse_document(f.read(), filepath)


def _read_local(path, limit=None):
    print_stage("Load", "Read graph documents from local disk")

    with Timer("Graph load"):
        if os.path.isdir(path):
            files = sorted(f for f in os.listdir(path) if f.endswith(SHARD_SUFFIX))
            if limit:
                files = files[:limit]
            filepaths = [os.path.join(path, f) for f in files]
        else:
            filepaths = [path]

        max_workers = default_workers()
        print_step(f"Reading {len(filepaths)} shards with {max_workers} threads...")
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            docs = dict(pool.map(_read_and_parse, filepaths))

        graph = PropertyGraph()
        names = sorted(docs)
        graph.merge_documents([docs[name] for name in names], names=names)
        _summarize(graph, path, len(docs))

    return graph


# ===================================================================
# GCS reading — each strategy returns dict[blob_name, bytes]
# ===================================================================

def _download_thread_pool(blobs, max_workers):
    downloaded = {}

    def _fetch(blob):
        buf = io.BytesIO()
        blob.download_to_file(buf)
        return blob.name, buf.getvalue()

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {pool.submit(_fetch, blob): blob for blob in blobs}
        with _progress(len(blobs)) as pbar:
            for future in as_completed(futures):
                name, data = future.result()
                downloaded[name] = data
                pbar.update(1)

    return downloaded


def _download_transfer_manager(blobs, max_workers):
    # download_many() has no per-file callback; the bar jumps to 100% at the end.
    from google.cloud.storage import transfer_manager

    file_objects = [io.BytesIO() for _ in blobs]
    with _progress(len(blobs)) as pbar:
        transfer_manager.download_many(
            list(zip(blobs, file_objects)),
            max_workers=max_workers,
            worker_type='thread',
            raise_exception=True,
        )
        pbar.update(len(blobs))

    return {blob.name: fobj.getvalue() for blob, fobj in zip(blobs, file_objects)}


def _download_sequential(blobs):
    downloaded = {}
    with _progress(len(blobs)) as pbar:
        for blob in blobs:
            downloaded[blob.name] = blob.download_as_bytes()
            pbar.update(1)
    return downloaded


def _download_http_pool(blobs, bucket_name, max_workers):
    """
    Fetch public objects over one keep-alive requests.Session.

    Reusing TCP connections avoids the per-file TLS handshake that
    blob.download_to_file() pays for every shard.
    """
    import requests
    from requests.adapters import HTTPAdapter

    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=max_workers, pool_maxsize=max_workers, max_retries=3)
    session.mount('https://', adapter)

    def _fetch(name):
        resp = session.get(f"https://storage.googleapis.com/{bucket_name}/{name}")
        resp.raise_for_status()
        return name, resp.content

    downloaded = {}
    try:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [pool.submit(_fetch, blob.name) for blob in blobs]
            with _progress(len(blobs)) as pbar:
                for future in as_completed(futures):
                    name, data = future.result()
                    downloaded[name] = data
                    pbar.update(1)
    finally:
        session.close()
    return downloaded


def _read_gcs(bucket_name, prefix="", method="thread_pool", limit=None, anonymous=False, project=None):
    from google.cloud import storage

    print_stage("Load", "Read graph documents from GCS")

    with Timer("Graph load"):
        if anonymous:
            print_step(f"Connecting to bucket: {bucket_name} (anonymous)")
            client = storage.Client.create_anonymous_client()
        else:
            proj = project or os.environ.get('GOOGLE_CLOUD_PROJECT')
            print_step(f"Connecting to bucket: {bucket_name} (authenticated, project={proj})")
            client = storage.Client(project=proj)
        bucket = client.bucket(bucket_name)

        with Timer("Listing blobs"):
            blobs = [b for b in bucket.list_blobs(prefix=prefix) if b.name.endswith(SHARD_SUFFIX)]
        blobs.sort(key=lambda b: b.name)
        print_success(f"Found {len(blobs)} graph shards")

        if limit is not None and limit < len(blobs):
            blobs = blobs[:limit]
            print_success(f"Limiting to {limit} shards")

        max_workers = default_workers()
        print_step(f"Downloading {len(blobs)} shards [{method}] ...")
        with Timer("Download"):
            if method == "thread_pool":
                downloaded = _download_thread_pool(blobs, max_workers)
            elif method == "transfer_manager":
                downloaded = _download_transfer_manager(blobs, max_workers)
            elif method == "sequential":
                downloaded = _download_sequential(blobs)
            elif method == "http_pool":
                downloaded = _download_http_pool(blobs, bucket_name, max_workers)
            else:
                raise ValueError(f"Unknown download method: {method!r}")

        graph = PropertyGraph()
        names = sorted(downloaded)
        graph.merge_documents([parse_document(downloaded[name], name) for name in names], names=names)
        _summarize(graph, f"gs://{bucket_name}/{prefix}", len(downloaded), method)

    return graph


# ===================================================================
# Unified entry point — auto-detects local vs GCS
# ===================================================================

def read_graph(source, prefix="", method="thread_pool", limit=None, anonymous=False, project=None):
    """
    Load a PropertyGraph from local JSON documents or a GCS bucket.

    Args:
        source (str): file path, directory path, or GCS bucket name
        prefix (str): GCS object prefix (ignored for local sources)
        method (str): GCS download strategy, one of METHODS
        limit (int|None): max number of shards to read
        anonymous (bool): use an anonymous GCS client (public buckets)
        project (str|None): GCP project for the authenticated client

    Returns:
        PropertyGraph
    """
    if method not in METHODS:
        raise ValueError(f"Unknown download method: {method!r}")
    if os.path.exists(source):
        print_step(f"Detected local source: {source}")
        return _read_local(source, limit=limit)
    print_step(f"Detected GCS bucket: {source}")
    return _read_gcs(source, prefix=prefix, method=method, limit=limit,
                     anonymous=anonymous, project=project)
