#!/usr/bin/env python3
"""Run one or more bill PDFs through the extraction pipeline."""
import json
import sys
from pathlib import Path

# Load .env file
from dotenv import load_dotenv
load_dotenv()

from bill_ingestion.config import Settings
from bill_ingestion.pipeline import BillExtractionPipeline
from bill_ingestion.utils.logging import setup_logging


def main(pdf_paths: list[str]) -> None:
    """Process the PDFs as one batch and print the merged items."""
    files = []
    for pdf_path in pdf_paths:
        path = Path(pdf_path)
        if not path.exists():
            print(f"Error: File not found: {pdf_path}")
            sys.exit(1)
        files.append((path.name, path.read_bytes()))

    settings = Settings()
    setup_logging(settings.log_level, json_logs=False)
    pipeline = BillExtractionPipeline(settings)

    try:
        results, items = pipeline.process_batch(files)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    for result in results:
        print(f"{result.source_file}: vendor={result.vendor.value} method={result.method} "
              f"pages={result.page_count} items={len(result.items)} ({result.processing_time_ms}ms)")
        if result.document_total is not None:
            print(f"  Document total: ${result.document_total:,.2f}")

    print("-" * 50)
    for item in items:
        status = "auto-approved" if item.auto_approved else "needs review"
        print(f"[{item.confidence:>2}/10 {status}] meter={item.meter_no or '-'} "
              f"{item.period_start or '?'} - {item.period_end or '?'} | {item.service_address or '-'}")
        for hint in item.hints:
            print(f"    hint: {hint}")

    # Save full result next to the first file
    output_path = Path(pdf_paths[0]).with_suffix(".json")
    with open(output_path, "w") as f:
        json.dump([item.model_dump(mode="json") for item in items], f, indent=2, default=str)
    print(f"\nFull result saved to: {output_path}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts/process_pdf.py <path-to-pdf> [<path-to-pdf> ...]")
        sys.exit(1)

    main(sys.argv[1:])
