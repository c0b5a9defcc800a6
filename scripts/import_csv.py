"""
Preview or commit an emissions CSV from the command line.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from emissions_ingest.config import get_ingestion_settings
from emissions_ingest.domain.canonical import DuplicatePolicy, HeaderMapping
from emissions_ingest.errors import IngestError, PartialCommitError, SchemaMismatchError
from emissions_ingest.parsing.csv_reader import parse_csv, read_upload_bytes
from emissions_ingest.repositories import SQLAlchemyEmissionRecordStore, SQLAlchemyImportJobStore
from emissions_ingest.schemas import CommitResponse, PreviewResponse
from emissions_ingest.services import get_commit_service, get_preview_service
from db.session import session_scope


def _load_mapping(path: str | None) -> HeaderMapping | None:
    if not path:
        return None
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(raw, dict) and isinstance(raw.get("mapping"), dict):
        return HeaderMapping.from_wire(raw["mapping"], notes=raw.get("notes"))
    return HeaderMapping.from_wire(raw)


def main() -> int:
    parser = argparse.ArgumentParser(description="Preview or commit an emissions CSV file.")
    parser.add_argument("csv_path", help="Path to the CSV file.")
    parser.add_argument(
        "--commit",
        action="store_true",
        help="Write accepted rows. Without this flag only a preview is printed.",
    )
    parser.add_argument("--dataset-version", dest="dataset_version", default=None)
    parser.add_argument("--dataset-name", dest="dataset_name", default=None)
    parser.add_argument(
        "--duplicate-policy",
        dest="duplicate_policy",
        choices=[policy.value for policy in DuplicatePolicy],
        default=DuplicatePolicy.REPLACE_IF_NEWER.value,
    )
    parser.add_argument(
        "--mapping",
        dest="mapping_path",
        default=None,
        help="Optional JSON file with a header mapping.",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    path = Path(args.csv_path)
    try:
        with path.open("rb") as stream:
            content = read_upload_bytes(stream, max_bytes=get_ingestion_settings().max_upload_bytes)
        upload = parse_csv(content, file_name=path.name)
        mapping = _load_mapping(args.mapping_path)

        if not args.commit:
            report = get_preview_service().preview(upload, mapping=mapping)
            print(PreviewResponse.from_report(report).model_dump_json(by_alias=True, indent=2))
            return 0

        if not args.dataset_version:
            parser.error("--dataset-version is required with --commit")

        with session_scope() as db:
            result = get_commit_service().commit(
                upload,
                record_store=SQLAlchemyEmissionRecordStore(db),
                job_store=SQLAlchemyImportJobStore(db),
                dataset_version=args.dataset_version,
                dataset_name=args.dataset_name,
                duplicate_policy=args.duplicate_policy,
                mapping=mapping,
            )
        print(CommitResponse.from_result(result).model_dump_json(by_alias=True, indent=2))
        return 0
    except SchemaMismatchError as exc:
        print(json.dumps(exc.to_dict(), indent=2), file=sys.stderr)
        return 2
    except PartialCommitError as exc:
        print(json.dumps(exc.to_dict(), indent=2, default=str), file=sys.stderr)
        return 1
    except (IngestError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
