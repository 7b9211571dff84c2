from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import List, Optional, Protocol, Union

import pandas as pd
from openpyxl import load_workbook
from openpyxl.cell.cell import TYPE_ERROR

from practice_metrics.data import STATUS, ProposalStatus

logger = logging.getLogger(__name__)

MASTER_SHEET = "Master Data"
PROPOSAL_SHEET = "Proposal Log"
SUMMARY_SHEET = "Summary"

# A typed "NA" status is stored by Excel as the #N/A error value.
NA_ERROR_TOKENS = {"#N/A", "#N/A N/A"}


class FileFetcher(Protocol):
    """Retrieves raw workbook bytes by file name (SharePoint, local disk, ...)."""

    def download(self, filename: str) -> bytes:
        ...


class LocalFileFetcher:
    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def download(self, filename: str) -> bytes:
        return (self.directory / filename).read_bytes()


@dataclass(frozen=True)
class SourceFrames:
    engagements: pd.DataFrame
    proposals: pd.DataFrame
    monthly_summary: pd.DataFrame
    clients: pd.DataFrame


def parse_sheet(book: pd.ExcelFile, sheet_name: Optional[str] = None) -> pd.DataFrame:
    """Header-driven parse of one sheet; blank and error cells become "" and text such as "NA" stays text."""
    if sheet_name is None:
        if not book.sheet_names:
            return pd.DataFrame()
        sheet_name = book.sheet_names[0]
    if sheet_name not in book.sheet_names:
        logger.warning("sheet %r not found; available: %s", sheet_name, book.sheet_names)
        return pd.DataFrame()
    df = pd.read_excel(book, sheet_name=sheet_name, dtype=object, keep_default_na=False, na_values=[])
    df.columns = [str(c).strip() for c in df.columns]
    df = df.loc[:, ~df.columns.duplicated()]
    return df.fillna("")


def _cell_value(cell, *, is_status: bool) -> object:
    if cell.value is None:
        return ""
    if is_status and str(cell.value).strip() in NA_ERROR_TOKENS:
        return ProposalStatus.NOT_AWARDED.value
    if cell.data_type == TYPE_ERROR:
        return str(cell.value)
    return cell.value


def parse_proposal_log(data: bytes, sheet_name: str = PROPOSAL_SHEET) -> pd.DataFrame:
    """Cell-level parse of the proposal log.

    The not-awarded status "NA" must survive as the literal code: pandas reads
    Excel error cells as NaN, so this sheet is read through openpyxl and
    ``#N/A`` in the Status column is restored to "NA".
    """
    wb = load_workbook(BytesIO(data), read_only=True, data_only=True)
    try:
        if sheet_name not in wb.sheetnames:
            logger.warning("sheet %r not found; available: %s", sheet_name, wb.sheetnames)
            return pd.DataFrame()
        rows = wb[sheet_name].iter_rows()
        header_cells = next(rows, None)
        if header_cells is None:
            return pd.DataFrame()
        headers = [
            str(c.value).strip() if c.value is not None else f"Col{idx}" for idx, c in enumerate(header_cells)
        ]
        status_idx = headers.index(STATUS) if STATUS in headers else None

        out: List[dict] = []
        for cells in rows:
            values = [_cell_value(c, is_status=(idx == status_idx)) for idx, c in enumerate(cells)]
            if not any(v != "" for v in values):
                continue
            values += [""] * (len(headers) - len(values))
            out.append(dict(zip(headers, values)))
    finally:
        wb.close()

    df = pd.DataFrame(out, columns=headers)
    df = df.loc[:, ~df.columns.duplicated()]
    return df.fillna("")


class WorkbookSource:
    """Loads the four row collections from the master and marketing workbooks."""

    def __init__(self, fetcher: FileFetcher, *, master_file: str, marketing_file: str):
        self.fetcher = fetcher
        self.master_file = master_file
        self.marketing_file = marketing_file

    def load_frames(self) -> SourceFrames:
        master_bytes = self.fetcher.download(self.master_file)
        marketing_bytes = self.fetcher.download(self.marketing_file)
        master = pd.ExcelFile(BytesIO(master_bytes))
        marketing = pd.ExcelFile(BytesIO(marketing_bytes))
        return SourceFrames(
            engagements=parse_sheet(master, MASTER_SHEET),
            proposals=parse_proposal_log(master_bytes),
            monthly_summary=parse_sheet(master, SUMMARY_SHEET),
            clients=parse_sheet(marketing),
        )
