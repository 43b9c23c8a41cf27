"""
FlashVault — Collection Import Client
=======================================

What:  Uploads a JSON export of an existing flashlight collection through
       POST /api/flashlights/bulk.
How:   Load → normalise legacy values → post in chunks (default 10) with a
       bearer token → print a summary.
Who:   Run once per user when moving a collection into FlashVault:

           flashvault-import lights.json --api-url http://localhost:8000 \\
               --token "$AUTH_TOKEN"

Input file:
    Either a JSON list of records or an object {"flashlights": [...]}.

Normalisation:
    - misspelled manufacturers are corrected (Sofrin → Sofirn)
    - legacy statuses fold into Wanted/Ordered/Owned/Sold
    - "In Transit" becomes "Shipped"; shipping status is only sent for Owned
      records
    - blank ip_rating / notes become null

A chunk that fails as a whole (network error, non-2xx answer) counts every
record in it as failed; the import continues with the next chunk.
"""

import argparse
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

import httpx

from flashvault.constants import (
    DEFAULT_IMPORT_CHUNK_SIZE,
    FlashlightStatus,
    canonical_flashlight_status,
    canonical_manufacturer,
    canonical_shipping_status,
)
from flashvault.middleware.request_id import REQUEST_ID_HEADER, new_request_id

logger = logging.getLogger("flashvault.import")

BULK_PATH = "/api/flashlights/bulk"

# Copied through unchanged when present
_PASSTHROUGH_FIELDS = (
    "model",
    "finish",
    "finish_group",
    "battery_type",
    "emitters",
    "driver",
    "ui",
    "anduril",
    "form_factors",
    "special_features",
    "purchase_date",
)


@dataclass
class ImportSummary:
    successful: int = 0
    failed: int = 0
    failures: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.successful + self.failed


def load_records(path: Path) -> List[Dict[str, Any]]:
    """Read a list, or an object with a `flashlights` list, from `path`."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, Mapping):
        data = data.get("flashlights")
    if not isinstance(data, list):
        raise ValueError(f"{path} must hold a JSON list or an object with a 'flashlights' list")
    return data


def normalize_record(light: Mapping[str, Any]) -> Dict[str, Any]:
    record = {key: light[key] for key in _PASSTHROUGH_FIELDS if key in light}

    manufacturer = light.get("manufacturer_name", light.get("manufacturer"))
    if isinstance(manufacturer, str):
        manufacturer = canonical_manufacturer(manufacturer)
    record["manufacturer_name"] = manufacturer

    status = light.get("status")
    if isinstance(status, str):
        status = canonical_flashlight_status(status)
    record["status"] = status

    shipping = light.get("shipping_status")
    if status == FlashlightStatus.OWNED.value and shipping:
        record["shipping_status"] = canonical_shipping_status(shipping)
    else:
        record["shipping_status"] = None

    record["ip_rating"] = light.get("ip_rating") or None
    record["notes"] = light.get("notes") or None
    return record


def chunked(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    for start in range(0, len(items), size):
        yield items[start:start + size]


class ImportClient:
    """
    Posts normalised records to a FlashVault API.

    Args:
        api_url: Server root, e.g. http://localhost:8000.
        token: Access token sent as `Authorization: Bearer`.
        chunk_size: Records per bulk request.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        api_url: str,
        token: str,
        chunk_size: int = DEFAULT_IMPORT_CHUNK_SIZE,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.chunk_size = chunk_size
        self.timeout = timeout
        self._transport = transport

    def run(self, records: Sequence[Mapping[str, Any]]) -> ImportSummary:
        summary = ImportSummary()
        normalized = [normalize_record(r) for r in records]
        chunks = list(chunked(normalized, self.chunk_size))

        with httpx.Client(
            base_url=self.api_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self.token}"},
        ) as client:
            for number, chunk in enumerate(chunks, start=1):
                logger.info("Posting chunk %d of %d (%d records)", number, len(chunks), len(chunk))
                self._post_chunk(client, chunk, summary)

        return summary

    def _post_chunk(
        self,
        client: httpx.Client,
        chunk: Sequence[Dict[str, Any]],
        summary: ImportSummary,
    ) -> None:
        rid = new_request_id()
        try:
            response = client.post(
                BULK_PATH,
                json={"flashlights": list(chunk)},
                headers={REQUEST_ID_HEADER: rid},
            )
            response.raise_for_status()
            result = response.json()
            counts = result["summary"]
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            logger.error("Chunk [%s] failed as a whole: %s", rid, exc)
            summary.failed += len(chunk)
            summary.failures.extend(
                f"{r.get('manufacturer_name')} {r.get('model')}: chunk failed ({exc})" for r in chunk
            )
            return

        summary.successful += counts.get("successful", 0)
        summary.failed += counts.get("failed", 0)
        for failure in result.get("results", {}).get("failed", []):
            line = f"{failure.get('manufacturer')} {failure.get('model')}: {failure.get('error')}"
            logger.warning("Rejected [%s]: %s", rid, line)
            summary.failures.append(line)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flashvault-import",
        description="Import a flashlight collection export into FlashVault.",
    )
    parser.add_argument("path", type=Path, help="JSON export to import")
    parser.add_argument(
        "--api-url",
        default=os.environ.get("API_URL", "http://localhost:8000"),
        help="FlashVault server root (env: API_URL)",
    )
    parser.add_argument(
        "--token",
        default=os.environ.get("AUTH_TOKEN"),
        help="Access token for the importing user (env: AUTH_TOKEN)",
    )
    parser.add_argument("--chunk-size", type=int, default=DEFAULT_IMPORT_CHUNK_SIZE)
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the normalised records instead of sending them",
    )
    parser.add_argument("--log-level", default="INFO")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    try:
        records = load_records(args.path)
    except (OSError, ValueError) as exc:
        logger.error("Could not read %s: %s", args.path, exc)
        return 2

    if args.dry_run:
        print(json.dumps([normalize_record(r) for r in records], indent=2))
        return 0

    if not args.token:
        logger.error("An access token is required (--token or AUTH_TOKEN)")
        return 2

    logger.info("Found %d flashlights to import", len(records))
    summary = ImportClient(args.api_url, args.token, chunk_size=args.chunk_size).run(records)

    print("\n=== Import Summary ===")
    print(f"Imported: {summary.successful}")
    print(f"Failed:   {summary.failed}")
    for line in summary.failures:
        print(f"  - {line}")
    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
