"""
CSV ingestion for the ERP pipe export.

The export is a plain header + rows file with no quoting. Pipe rows are the
ones whose DESCRIPTION mentions TUBE and whose PROCESS column holds a free-text
instruction such as "1.9 OD--CUT: 14.5 FT--DRILL 2X 0.5".
"""

import logging
import re

from models import CutRequest
from od_classes import INCHES_PER_FOOT

logger = logging.getLogger(__name__)

PROCESS_DELIMITER = "--"
DEFAULT_DRILL_OPERATIONS = "NONE"

_FLOAT_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")


def parse(raw_text):
    """
    Minimal header-driven CSV split: first line is the header, every
    non-blank line after it is mapped positionally. Commas inside values are
    not supported. Missing trailing values become "".
    """
    lines = raw_text.split("\n")
    headers = [h.strip() for h in lines[0].split(",")]

    records = []
    for line in lines[1:]:
        if line.strip() == "":
            continue
        values = line.split(",")
        record = {}
        for i, header in enumerate(headers):
            record[header] = values[i].strip() if i < len(values) and values[i] else ""
        records.append(record)
    return records


def _parse_float(text):
    """Leading-number parse: "14.5FT" -> 14.5, "abc" -> None."""
    m = _FLOAT_PREFIX.match(text or "")
    return float(m.group(0)) if m else None


def _parse_int(text):
    m = _INT_PREFIX.match(text or "")
    return int(m.group(0)) if m else None


def od_key_from_text(od_info):
    """OD class from the free-text OD segment, or "" when nothing matches."""
    if "1.9" in od_info:
        return "1.9"
    if "2.375" in od_info:
        return "2.375"
    if "3.5" in od_info and ".216" in od_info:
        return "3.5 .216"
    if "3.5" in od_info and "0.12" in od_info:
        return "3.5 .12"
    return ""


def is_pipe_record(record):
    return "TUBE" in (record.get("DESCRIPTION") or "") and "OD" in (record.get("PROCESS") or "")


def _record_to_requests(record):
    segments = record["PROCESS"].split(PROCESS_DELIMITER)

    od_info = segments[0].strip()
    length_info = segments[1].strip() if len(segments) > 1 else ""
    drill_info = (segments[2].strip() if len(segments) > 2 else "") or DEFAULT_DRILL_OPERATIONS

    length_ft = None
    if "CUT:" in length_info:
        length_ft = _parse_float(length_info.split("CUT:")[1].strip().split(" ")[0])

    qty = _parse_int(record.get("PACK QTY") or "0")

    if length_ft is None or qty is None or length_ft <= 0 or qty <= 0:
        logger.debug("Skipping pipe record with no usable length/quantity: %r", record)
        return []

    od_key = od_key_from_text(od_info)
    if not od_key:
        raise ValueError("Unrecognized OD description: {!r}".format(od_info))

    request = CutRequest(
        length=length_ft * INCHES_PER_FOOT,
        diameter=float(od_key.split(" ")[0]),
        od_class=od_key,
        part_number=record.get("PART NUMBER"),
        drill_operations=drill_info,
    )
    return [request] * qty


def extract_cut_requests(records):
    """
    Turn parsed export records into CutRequest entries, one per physical pipe
    (PACK QTY expands). Malformed pipe records are logged and skipped.
    """
    requests = []
    skipped = 0
    for n, record in enumerate(records, start=1):
        if not is_pipe_record(record):
            continue
        try:
            requests.extend(_record_to_requests(record))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            skipped += 1
            logger.warning("Error processing CSV record %d: %s", n, e)

    if skipped:
        logger.warning("Skipped %d malformed pipe record(s)", skipped)
    logger.info("Extracted %d cut request(s) from %d record(s)", len(requests), len(records))
    return requests
