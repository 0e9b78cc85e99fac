# pltv_synth/graphics.py

"""
Graphical displays of model quality: predicted vs realised value by decile,
and split-gain feature importance.
"""

# Import libraries and modules
from __future__ import annotations
from pathlib import Path
from typing import Optional
from matplotlib.backends.backend_pdf import PdfPages

import pandas as pd
import matplotlib.pyplot as plt

def plot_decile_lift(lift_df: pd.DataFrame, *, title: str = "pLTV decile lift") -> plt.Figure:
    need = {"pltv_decile", "mean_pred", "mean_actual"}
    missing = sorted(need - set(lift_df.columns))
    if missing:
        raise KeyError(f"lift_df missing required columns: {missing}")

    df = lift_df.sort_values("pltv_decile")
    x = df["pltv_decile"].to_numpy(dtype=int)
    width = 0.4

    fig, ax = plt.subplots(figsize=(9.0, 4.8))
    ax.bar(x - width / 2, df["mean_pred"], width=width, label="Predicted")
    ax.bar(x + width / 2, df["mean_actual"], width=width, label="Actual")
    ax.set_title(title)
    ax.set_xlabel("Predicted decile")
    ax.set_ylabel("Mean value (USD)")
    ax.set_xticks(x)
    ax.legend()

    # Light grid for readability
    ax.grid(True, axis="y", alpha=0.25)
    return fig

def plot_feature_importance(imp_df: pd.DataFrame, *, title: str = "Feature importance (split gain)") -> plt.Figure:
    if not {"feature", "importance"}.issubset(imp_df.columns):
        raise KeyError("imp_df needs 'feature' and 'importance' columns")

    df = imp_df.sort_values("importance", ascending=True)
    fig, ax = plt.subplots(figsize=(8.0, 0.45 * max(len(df), 4) + 1.0))
    ax.barh(df["feature"], df["importance"])
    ax.set_title(title)
    ax.set_xlabel("Share of total gain")
    top = float(df["importance"].to_numpy(dtype=float).max(initial=0.0))
    ax.set_xlim(0, max(1e-9, top) * 1.1)
    ax.grid(True, axis="x", alpha=0.25)
    fig.tight_layout()
    return fig

def export_model_plots(
    lift_df: pd.DataFrame,
    imp_df: pd.DataFrame,
    *,
    out_dir: Path,
    write_pngs: bool = True,
    png_dpi: int = 160,
    write_pdf: bool = True,
    pdf_name: str = "pltv_model.pdf",
    title_suffix: Optional[str] = None,
) -> dict[str, Path]:
    """
    Writes:
      - decile_lift.png / feature_importance.png if write_pngs=True
      - one multipage PDF with both charts if write_pdf=True

    Returns dict of written artifact paths.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    suffix = f" - {title_suffix}" if title_suffix else ""

    figs = {
        "decile_lift": plot_decile_lift(lift_df, title=f"pLTV decile lift{suffix}"),
        "feature_importance": plot_feature_importance(imp_df, title=f"Feature importance (split gain){suffix}"),
    }

    written: dict[str, Path] = {}
    pdf_path = out_dir / pdf_name
    pdf = PdfPages(pdf_path) if write_pdf else None
    try:
        for name, fig in figs.items():
            if write_pngs:
                png_path = out_dir / f"{name}.png"
                fig.savefig(png_path, dpi=png_dpi)
                written[f"png:{name}"] = png_path
            if pdf is not None:
                pdf.savefig(fig)
    finally:
        for fig in figs.values():
            plt.close(fig)
        if pdf is not None:
            pdf.close()
            written["pdf"] = pdf_path

    return written
