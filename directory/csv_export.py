"""
e-doğrula: CSV exports. Semicolon separated, UTF-8 with BOM so spreadsheet apps pick the encoding.
"""

import csv
import json
from datetime import datetime

from django.http import HttpResponse

BOM = '\ufeff'
DELIMITER = ';'


def cell_text(value):
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def write_csv(stream, header, rows, always_quote=False):
    """
    Write BOM, header and ``rows`` (dicts keyed by header names, any
    iterable) to ``stream``. Cells are quoted only when needed unless
    ``always_quote`` is set.
    """
    stream.write(BOM)
    writer = csv.writer(
        stream,
        delimiter=DELIMITER,
        quoting=csv.QUOTE_ALL if always_quote else csv.QUOTE_MINIMAL,
        lineterminator='\n',
    )
    writer.writerow(header)
    for row in rows:
        writer.writerow([cell_text(row.get(h)) for h in header])


def csv_response(header, rows, filename, always_quote=False):
    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    write_csv(response, header, rows, always_quote=always_quote)
    return response


def union_header(rows):
    header = []
    for row in rows:
        for key in row:
            if key not in header:
                header.append(key)
    return header


def rows_to_csv_response(rows, filename):
    """Generic export: header from the union of keys, every value quoted."""
    return csv_response(union_header(rows), rows, filename, always_quote=True)
