import asyncio
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from docqa_server.api.dependencies import get_document_store, get_qa_service
from docqa_server.config import settings
from docqa_server.db.session import async_engine, init_schema


USAGE = "usage: ingest_document.py [--init-schema] URL [URL ...]"


async def main(urls, create_schema):
    if get_document_store() is None:
        print("DOCUMENT_STORE is 'none'; nothing to ingest into.")
        return 1

    if create_schema and settings.document_store == "pgvector":
        print("Creating pgvector extension and tables...")
        await init_schema()

    qa_service = get_qa_service()
    failures = 0

    try:
        for i, url in enumerate(urls):
            print(f"Ingesting ({i+1}/{len(urls)}): {url}")
            try:
                report = await qa_service.ensure_ingested(url)
            except Exception as e:
                print(f"  failed: {type(e).__name__}: {e}")
                failures += 1
                continue

            if not report.ingested:
                print("  already stored, skipped")
                continue

            print(f"  stored {report.chunk_count} chunks")
            for note in report.notes:
                print(f"  note: {note}")
    finally:
        await async_engine.dispose()

    return 1 if failures else 0


if __name__ == "__main__":
    args = sys.argv[1:]
    create_schema = "--init-schema" in args
    urls = [a for a in args if a != "--init-schema"]
    if not urls:
        print(USAGE)
        sys.exit(2)
    sys.exit(asyncio.run(main(urls, create_schema)))
