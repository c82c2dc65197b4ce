"""
report.py
NYPD Shooting Incidents: victim-race trend report

Runs the whole pipeline (download → clean → aggregate → model) and renders a
single HTML document:
- a three-row summary table and a per-column overview of the cleaned data
- cumulative incidents by victim race, for all races and for one focus race
- actual daily counts against the OLS fit by race
- a fixed discussion of bias and limitations, plus session metadata
"""

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import matplotlib.ticker as mticker
import pandas as pd
import seaborn as sns
from jinja2 import Template

from aggregation import CUMULATIVE, DAILY, DATE, VICTIM_RACE, aggregate, filter_victim_race
from data_cleaning import AuditTrail, run_cleaning
from data_collection import DATA_URL, load_incidents
from regression import PREDICTED, RaceModel, fit_race_model
from session_metadata import collect_session_info

log = logging.getLogger(__name__)


# ── Configuration ─────────────────────────────────────────────────────────────
OUTPUT_DIR   = Path("output")
FIG_SUBDIR   = "figures"
REPORT_NAME  = "report.html"
AUDIT_NAME   = "cleaning_audit.json"
FOCUS_RACE   = "BLACK"

LOG_FORMAT   = "%(asctime)s | %(levelname)s | %(message)s"

# ── Style ─────────────────────────────────────────────────────────────────────
SERIES_PALETTE = "tab10"
ACCENT   = "#D62728"   # red: fitted values
NEUTRAL  = "#4C72B0"   # blue: observed counts
BG_GRAY  = "#F7F7F7"
SOURCE_NOTE = "Source: NYPD Shooting Incident Data (Historic) / data.cityofnewyork.us"

plt.rcParams.update({
    "figure.facecolor": BG_GRAY,
    "axes.facecolor":   BG_GRAY,
    "axes.spines.top":  False,
    "axes.spines.right": False,
    "axes.labelsize":   11,
    "axes.titlesize":   13,
    "axes.titleweight": "bold",
    "xtick.labelsize":  9,
    "ytick.labelsize":  9,
    "font.family":      "sans-serif",
})

BIAS_DISCUSSION = [
    "Victim race is recorded by the NYPD, not self-reported by the victim. "
    "Classification practices can differ between officers and precincts and "
    "have changed over the years the dataset covers.",
    "The dataset contains only incidents that were reported and recorded as "
    "shootings. Under-reporting is unlikely to be uniform across neighbourhoods, "
    "so differences between groups may partly reflect differences in reporting "
    "and policing intensity rather than in underlying violence.",
    "Counts are not normalised by population. A larger cumulative total for one "
    "group says nothing about per-capita risk without census denominators.",
    "Missing and '(null)' demographics are kept as an explicit UNKNOWN category "
    "rather than dropped, so the totals stay complete, but that category mixes "
    "several kinds of missingness.",
    "The regression uses victim race as its only predictor. It describes average "
    "daily counts per group and makes no causal claim; its predictions are group "
    "means and can be fractional.",
    "Personal bias: choosing victim race as the dimension of analysis is itself a "
    "framing decision. To limit its influence the report shows all categories, "
    "keeps unknowns visible, and avoids interpreting differences beyond what the "
    "counts show.",
]

REPORT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
  body { font-family: sans-serif; max-width: 1100px; margin: 2em auto; color: #222; }
  h1, h2 { color: #333; }
  table { border-collapse: collapse; margin: 1em 0; font-size: 0.9em; }
  th, td { border-bottom: 1px solid #ddd; padding: 4px 10px; text-align: left; }
  figure { margin: 1.5em 0; }
  figcaption { color: #666; font-size: 0.85em; }
  .note { color: #666; font-size: 0.85em; }
</style>
</head>
<body>
<h1>{{ title }}</h1>
<p class="note">Data source: <a href="{{ source }}">{{ source }}</a></p>

<h2>Summary</h2>
{{ summary_table | safe }}

<h2>Cleaned data overview</h2>
{{ describe_table | safe }}

<h2>Cumulative incidents by victim race</h2>
{% for figure in figures %}
<figure>
  <img src="{{ figure.path }}" alt="{{ figure.title }}" width="100%">
  <figcaption>{{ figure.caption }}</figcaption>
</figure>
{% endfor %}

<h2>Model: daily incidents ~ victim race</h2>
{% if model.n_observations %}
<p>Ordinary least squares on {{ model.n_observations }} (date, victim race) rows.
Reference level: <strong>{{ model.reference_level }}</strong>.
R&sup2; = {{ "%.4f" | format(model.r_squared) }}.</p>
{{ coefficient_table | safe }}
<h3>Daily counts by victim race</h3>
{{ category_table | safe }}
{% else %}
<p>No daily counts were available to fit the model.</p>
{% endif %}

<h2>Bias and limitations</h2>
{% for paragraph in bias %}
<p>{{ paragraph }}</p>
{% endfor %}

<h2>Cleaning audit</h2>
{{ audit_table | safe }}

<h2>Session info</h2>
{{ session_table | safe }}
</body>
</html>
"""


# ── Helpers ───────────────────────────────────────────────────────────────────

def _save(fig: plt.Figure, name: str, fig_dir: Path) -> Path:
    fig_dir.mkdir(parents=True, exist_ok=True)
    path = fig_dir / f"{name}.png"
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    log.info(f"Figure saved → {path}")
    return path


def _source_note(ax, note=SOURCE_NOTE):
    ax.annotate(note, xy=(0, -0.15), xycoords="axes fraction",
                fontsize=7, color="gray")


def _empty_note(ax, text="No incidents to plot"):
    ax.text(0.5, 0.5, text, ha="center", va="center",
            transform=ax.transAxes, color="gray")


def fmt_thousands(ax, axis="y"):
    fmt = mticker.FuncFormatter(lambda x, _: f"{x:,.0f}")
    if axis == "y":
        ax.yaxis.set_major_formatter(fmt)
    else:
        ax.xaxis.set_major_formatter(fmt)


def _html_table(df: pd.DataFrame) -> str:
    return df.to_html(index=False, border=0, na_rep="NaN",
                      float_format=lambda x: f"{x:,.3f}")


# ── Tables ────────────────────────────────────────────────────────────────────

def summary_table(cleaned: pd.DataFrame) -> pd.DataFrame:
    return pd.DataFrame({
        "metric": ["Total incidents", "Victim race categories", "Precinct categories"],
        "value": [
            len(cleaned),
            int(cleaned["vic_race"].nunique()),
            int(cleaned["precinct"].nunique()),
        ],
    })


def describe_incidents(cleaned: pd.DataFrame) -> pd.DataFrame:
    """Per-column non-null count, distinct values and most frequent value."""
    rows = []
    for col in cleaned.columns:
        values = cleaned[col]
        top = ""
        if values.notna().any():
            top = str(values.value_counts().idxmax())
        rows.append({
            "column": col,
            "dtype": str(values.dtype),
            "non_null": int(values.notna().sum()),
            "distinct": int(values.nunique()),
            "most_frequent": top,
        })
    return pd.DataFrame(rows, columns=["column", "dtype", "non_null", "distinct", "most_frequent"])


# ── Charts ────────────────────────────────────────────────────────────────────

def plot_cumulative_by_race(cumulative: pd.DataFrame, races=None, title=None) -> plt.Figure:
    """
    One step line per victim race. A date with no incidents for a race keeps the
    line flat at its last value.
    """
    data = cumulative
    if races is not None:
        data = cumulative[cumulative[VICTIM_RACE].isin(races)]

    fig, ax = plt.subplots(figsize=(12, 6))
    ax.set_title(title or "Cumulative Shooting Incidents by Victim Race")
    ax.set_xlabel("Date")
    ax.set_ylabel("Cumulative incidents")

    if data.empty:
        _empty_note(ax)
        return fig

    groups = list(data.groupby(VICTIM_RACE, observed=True))
    colors = sns.color_palette(SERIES_PALETTE, n_colors=len(groups))
    for color, (race, grp) in zip(colors, groups):
        ax.plot(grp[DATE], grp[CUMULATIVE], drawstyle="steps-post",
                linewidth=2, color=color, label=race)

    ax.legend(title="Victim race", fontsize=8)
    fmt_thousands(ax)
    _source_note(ax)
    fig.autofmt_xdate()
    return fig


def plot_model_fit(predictions: pd.DataFrame) -> plt.Figure:
    """Observed daily counts per race (jittered) with the OLS fit drawn through them."""
    fig, ax = plt.subplots(figsize=(12, 6))
    ax.set_title("Daily Incidents by Victim Race: Observed vs OLS Fit")
    ax.set_xlabel("Victim race")
    ax.set_ylabel("Incidents per day")

    if predictions.empty:
        _empty_note(ax)
        return fig

    data = predictions.assign(**{VICTIM_RACE: predictions[VICTIM_RACE].astype(str)})
    order = sorted(data[VICTIM_RACE].unique())

    sns.stripplot(data=data, x=VICTIM_RACE, y=DAILY, order=order, ax=ax,
                  color=NEUTRAL, alpha=0.35, jitter=0.25, size=3)
    fitted = data.groupby(VICTIM_RACE)[PREDICTED].mean().reindex(order)
    ax.plot(range(len(order)), fitted.to_numpy(), color=ACCENT, marker="o",
            linewidth=2, label="OLS fit (race mean)")

    ax.set_xticks(range(len(order)))
    ax.set_xticklabels(order, rotation=30, ha="right")
    ax.legend(fontsize=8)
    _source_note(ax, note=SOURCE_NOTE + "  |  x positions are category indices")
    return fig


# ── Rendering ─────────────────────────────────────────────────────────────────

def render_report(
    cleaned: pd.DataFrame,
    figures: list[dict],
    model: RaceModel,
    audit: AuditTrail,
    session: pd.DataFrame,
    source: str = DATA_URL,
) -> str:
    template = Template(REPORT_TEMPLATE, autoescape=True)
    return template.render(
        title="NYPD Shooting Incidents by Victim Race",
        source=source,
        summary_table=_html_table(summary_table(cleaned)),
        describe_table=_html_table(describe_incidents(cleaned)),
        figures=figures,
        model=model,
        coefficient_table=_html_table(model.coefficients),
        category_table=_html_table(model.category_stats),
        bias=BIAS_DISCUSSION,
        audit_table=_html_table(audit.to_frame()),
        session_table=_html_table(session),
    )


# ── Pipeline Orchestrator ─────────────────────────────────────────────────────

def run_report(source: str = DATA_URL, output_dir=OUTPUT_DIR, focus_race: str = FOCUS_RACE) -> Path:
    """
    Run the full pipeline once and write the report.

    Parameters
    ----------
    source     : dataset URL, or a path to a local copy of the CSV
    output_dir : directory for report.html, figures/ and the cleaning audit
    focus_race : victim race shown on its own in the second cumulative chart

    Returns
    -------
    Path to the rendered report.html
    """
    output_dir = Path(output_dir)
    fig_dir = output_dir / FIG_SUBDIR

    raw = load_incidents(source)
    cleaned, audit = run_cleaning(raw)
    daily, cumulative = aggregate(cleaned)
    model = fit_race_model(daily)

    charts = [
        ("01_cumulative_by_race",
         plot_cumulative_by_race(cumulative),
         "Cumulative incidents, all victim races",
         "Running total of shooting incidents per victim race."),
        ("02_cumulative_focus_race",
         plot_cumulative_by_race(filter_victim_race(cumulative, focus_race),
                                 title=f"Cumulative Shooting Incidents: {focus_race} Victims"),
         f"Cumulative incidents, {focus_race} victims",
         f"Running total of shooting incidents with a {focus_race} victim."),
        ("03_model_fit",
         plot_model_fit(model.predictions),
         "Observed daily counts vs OLS fit",
         "Each point is one day's count for a victim race; the line joins the "
         "fitted (mean) count per race."),
    ]
    figures = []
    for name, fig, title, caption in charts:
        path = _save(fig, name, fig_dir)
        figures.append({"path": f"{FIG_SUBDIR}/{path.name}", "title": title, "caption": caption})

    audit.save(output_dir / AUDIT_NAME)
    log.info("\n" + audit.summary())

    html = render_report(cleaned, figures, model, audit, collect_session_info(), source=source)
    report_path = output_dir / REPORT_NAME
    report_path.write_text(html, encoding="utf-8")
    log.info(f"Report written → {report_path}")
    return report_path


def main():
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt="%H:%M:%S")
    run_report()


# ── Entry Point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    main()
