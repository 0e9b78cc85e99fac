# pltv_synth/exports.py

"""
Writers for the run's tables: single CSV/Excel files, the optional multi-tab
summary workbook, and the all-or-nothing export of the six output CSVs.
"""

# Import libraries and modules
from __future__ import annotations
import os
import re
from pathlib import Path
from typing import Dict, Mapping, Sequence

import pandas as pd

from .contracts import MONEY_COLS, OUTPUT_FILES, TABLE_COLS

CSV_SUFFIXES = {".csv"}
EXCEL_SUFFIXES = {".xlsx", ".xls"}
_SHEET_BAD_CHARS = re.compile(r"[:\\/?*\[\]]")
MAX_SHEET_NAME = 31

# Helpers
def _next_free_path(out_path: Path) -> Path:
    """'name.ext' if free, else the first free 'name (k).ext'."""
    k = 0
    candidate = out_path
    while candidate.exists():
        k += 1
        candidate = out_path.with_name(f"{out_path.stem} ({k}){out_path.suffix}")
    return candidate

def _target_path(out_path: Path, *, overwrite: bool, make_unique: bool) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    if overwrite or not out_path.exists():
        return out_path
    if not make_unique:
        raise FileExistsError(f"Output file already exists: {out_path}")
    return _next_free_path(out_path)

def _sheet_name(name: str) -> str:
    name = _SHEET_BAD_CHARS.sub(" ", str(name)).strip()
    return name[:MAX_SHEET_NAME] or "Sheet1"

def format_table(df: pd.DataFrame, money_cols: Sequence[str] = MONEY_COLS) -> pd.DataFrame:
    """Copy of df with money columns rendered as fixed 2-decimal strings."""
    out = df.copy()
    for c in money_cols:
        if c in out.columns:
            vals = pd.to_numeric(out[c], errors="coerce")
            out[c] = vals.map(lambda v: "" if pd.isna(v) else f"{v:.2f}")
    return out

# Single table
def save_df(
    df: pd.DataFrame,
    out_path: Path,
    *,
    index: bool = False,
    overwrite: bool = False,
    make_unique: bool = True,
    money: bool = False,
) -> Path:
    """
    Write one table as CSV (LF line endings, UTF-8) or Excel, chosen by suffix.

    money=True renders the money columns with two decimals first. Returns the
    path actually written, which differs from out_path when a unique name was
    needed.
    """
    suffix = Path(out_path).suffix.lower()
    if suffix not in CSV_SUFFIXES | EXCEL_SUFFIXES:
        raise ValueError(f"Unsupported output format: {suffix}. Use .csv or .xlsx/.xls")

    path = _target_path(out_path, overwrite=overwrite, make_unique=make_unique)
    table = format_table(df) if money else df
    if suffix in CSV_SUFFIXES:
        table.to_csv(path, index=index, encoding="utf-8", lineterminator="\n")
    else:
        table.to_excel(path, index=index)
    return path

# Run summary workbook
def save_workbook(
    sheets: Mapping[str, pd.DataFrame],
    out_path: Path,
    *,
    index: bool = False,
    overwrite: bool = False,
    make_unique: bool = True,
) -> Path:
    """One tab per DataFrame (openpyxl engine); tab names are sanitised for Excel."""
    if Path(out_path).suffix.lower() not in EXCEL_SUFFIXES:
        raise ValueError("save_workbook requires an Excel path ending in .xlsx or .xls")

    bad = [name for name, df in sheets.items() if not isinstance(df, pd.DataFrame)]
    if bad:
        raise TypeError(f"Sheets are not DataFrames: {bad}")

    path = _target_path(out_path, overwrite=overwrite, make_unique=make_unique)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in sheets.items():
            df.to_excel(writer, sheet_name=_sheet_name(name), index=index)
    return path

# Output tables, all-or-nothing
def write_tables_atomic(
    tables: Mapping[str, pd.DataFrame],
    out_dir: Path,
    *,
    file_names: Mapping[str, str] = OUTPUT_FILES,
) -> Dict[str, Path]:
    """
    Write every table to a temp file in out_dir, then rename them all into place.

    If any write fails the temp files are removed, existing outputs are left
    untouched, and the exception propagates.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    unknown = sorted(set(tables) - set(file_names))
    if unknown:
        raise KeyError(f"No output file name for tables: {unknown}")

    staged: Dict[str, Path] = {}
    try:
        for name, df in tables.items():
            cols = TABLE_COLS.get(name)
            if cols is not None:
                missing = [c for c in cols if c not in df.columns]
                if missing:
                    raise KeyError(f"Table '{name}' missing columns: {missing}")
                df = df[list(cols)]
            tmp = out_dir / f".tmp-{file_names[name]}"
            staged[name] = tmp
            save_df(df, tmp, overwrite=True, money=True)
    except Exception:
        for tmp in staged.values():
            tmp.unlink(missing_ok=True)
        raise

    written: Dict[str, Path] = {}
    for name, tmp in staged.items():
        final = out_dir / file_names[name]
        os.replace(tmp, final)
        written[name] = final
    return written
