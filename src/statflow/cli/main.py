"""Main CLI entrypoint using Typer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, List, Dict, Tuple

import typer

from statflow import __version__
from statflow.cleaning.rules import CleaningRule, RemapRule, InvalidateRule, CoerceNumericRule, RequireRule
from statflow.config import AnalysisPlan
from statflow.data.loaders import missing_tokens
from statflow.data.spec import ColumnKind, ColumnSpec, DataSpec

app = typer.Typer(
    name="statflow",
    help="Load, clean, describe, test and chart small delimited datasets.",
    add_completion=False,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"statflow {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """statflow: load → clean → describe → test → report → charts."""
    pass


def split_option(value: str, sep: str, option: str) -> Tuple[str, str]:
    """Split ``A<sep>B`` into ``(A, B)``, rejecting empty sides."""
    left, found, right = value.partition(sep)
    if not found or not left or not right:
        raise typer.BadParameter(f"expected 'A{sep}B', got '{value}'", param_hint=option)
    return left, right


def parse_pairs(values: Optional[List[str]], sep: str, option: str) -> List[Tuple[str, str]]:
    return [split_option(v, sep, option) for v in values or []]


def parse_remaps(values: Optional[List[str]]) -> List[CleaningRule]:
    """``COL:OLD=NEW`` options -> one RemapRule per column, in first-use order."""
    mappings: Dict[str, Dict[str, str]] = {}
    for v in values or []:
        column, pair = split_option(v, ":", "--remap")
        old, new = split_option(pair, "=", "--remap")
        mappings.setdefault(column, {})[old] = new
    return [RemapRule(column, mapping) for column, mapping in mappings.items()]


def parse_invalidations(values: Optional[List[str]]) -> List[CleaningRule]:
    """``COL=VALUE`` options -> one InvalidateRule per column, in first-use order."""
    targets: Dict[str, List[str]] = {}
    for v in values or []:
        column, value = split_option(v, "=", "--invalidate")
        targets.setdefault(column, []).append(value)
    return [InvalidateRule(column, tuple(vals)) for column, vals in targets.items()]


def declared_columns(
    numeric: Optional[List[str]],
    categorical: Optional[List[str]],
    ordinal: Optional[List[str]],
) -> List[ColumnSpec]:
    columns = []
    for names, kind in (
        (numeric, ColumnKind.NUMERIC),
        (categorical, ColumnKind.CATEGORICAL),
        (ordinal, ColumnKind.ORDINAL),
    ):
        columns.extend(ColumnSpec(name, kind) for name in names or [])
    return columns


@app.command()
def analyze(
    data: Path = typer.Argument(..., help="Delimited text file with a header row"),
    delimiter: str = typer.Option(",", "--delimiter", "-d", help="Field delimiter"),
    decimal: str = typer.Option(".", "--decimal", help="Decimal mark"),
    na: Optional[List[str]] = typer.Option(None, "--na", help="Missing-value token (repeatable; default: '' and NA)"),
    numeric: Optional[List[str]] = typer.Option(None, "--numeric", help="Declare a numeric column"),
    categorical: Optional[List[str]] = typer.Option(None, "--categorical", help="Declare a categorical column"),
    ordinal: Optional[List[str]] = typer.Option(None, "--ordinal", help="Declare an ordinal (integer) column, e.g. Year"),
    rename: Optional[List[str]] = typer.Option(None, "--rename", help="Rename a column: OLD=NEW"),
    remap: Optional[List[str]] = typer.Option(None, "--remap", help="Replace a label: COL:OLD=NEW"),
    invalidate: Optional[List[str]] = typer.Option(None, "--invalidate", help="Set a value to missing: COL=VALUE"),
    coerce: Optional[List[str]] = typer.Option(None, "--coerce", help="Parse a text column as numbers (failures become missing)"),
    require: Optional[List[str]] = typer.Option(None, "--require", help="Drop rows missing this column"),
    summary: Optional[List[str]] = typer.Option(None, "--summary", help="Summary statistics of a column"),
    group_summary: Optional[List[str]] = typer.Option(None, "--group-summary", help="Grouped summary: COL:BY"),
    frequency: Optional[List[str]] = typer.Option(None, "--frequency", help="Frequency table of a column"),
    crosstab: Optional[List[str]] = typer.Option(None, "--crosstab", help="Cross table: A:B"),
    outliers: Optional[List[str]] = typer.Option(None, "--outliers", help="IQR outliers of a column"),
    outlier_id: Optional[str] = typer.Option(None, "--outlier-id", help="Column identifying outlier rows (default: row number)"),
    correlate: Optional[List[str]] = typer.Option(None, "--correlate", help="Pearson correlation: A:B"),
    regress: Optional[List[str]] = typer.Option(None, "--regress", help="Linear regression: Y~X"),
    ttest: Optional[List[str]] = typer.Option(None, "--ttest", help="Welch two-sample t-test: COL:GROUP"),
    chisq: Optional[List[str]] = typer.Option(None, "--chisq", help="Chi-square test of independence: A:B"),
    anova: Optional[List[str]] = typer.Option(None, "--anova", help="One-way ANOVA (+ Tukey HSD): COL:GROUP"),
    alpha: float = typer.Option(0.05, "--alpha", help="Significance threshold"),
    charts_pdf: Optional[Path] = typer.Option(None, "--charts-pdf", help="Write charts for the requested analyses to this PDF"),
    png_dir: Optional[Path] = typer.Option(None, "--png-dir", help="Also write one PNG per chart to this directory"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """
    Run an analysis on a delimited text file and print the report.

    Cleaning runs in the order remap → invalidate → coerce → require.

    Examples:
        # Survey: normalise labels, parse ages, drop incomplete rows, compare ages
        statflow analyze survey.csv \\
            --categorical Gender --categorical Age \\
            --remap Gender:man=male --remap Gender:woman=female \\
            --invalidate Gender=Gender --coerce Age \\
            --require Gender --require Age \\
            --summary Age --ttest Age:Gender --chisq Gender:Risk_Assessment

        # Semicolon-separated yearly series with decimal commas
        statflow analyze deaths.csv -d ";" --decimal , --ordinal Year \\
            --regress France~Year --correlate France:Germany --charts-pdf charts.pdf
    """
    if verbose:
        logging.getLogger("statflow").setLevel(logging.DEBUG)

    from statflow.stats import run_analysis, VizConfig

    try:
        rules: List[CleaningRule] = []
        rules.extend(parse_remaps(remap))
        rules.extend(parse_invalidations(invalidate))
        rules.extend(CoerceNumericRule(col, decimal=decimal) for col in dict.fromkeys(coerce or []))
        if require:
            rules.append(RequireRule(list(require)))

        spec = DataSpec(
            path=data,
            delimiter=delimiter,
            decimal=decimal,
            na_values=missing_tokens(na),
            columns=declared_columns(numeric, categorical, ordinal),
            rename=dict(parse_pairs(rename, "=", "--rename")),
        )

        plan = AnalysisPlan(
            data=spec,
            rules=rules,
            summaries=list(summary or []),
            group_summaries=parse_pairs(group_summary, ":", "--group-summary"),
            frequencies=list(frequency or []),
            crosstabs=parse_pairs(crosstab, ":", "--crosstab"),
            outliers=list(outliers or []),
            outlier_id_column=outlier_id,
            correlations=parse_pairs(correlate, ":", "--correlate"),
            regressions=parse_pairs(regress, "~", "--regress"),
            two_sample_tests=parse_pairs(ttest, ":", "--ttest"),
            association_tests=parse_pairs(chisq, ":", "--chisq"),
            variance_tests=parse_pairs(anova, ":", "--anova"),
            alpha=alpha,
            viz=VizConfig(png_dir=png_dir),
        )
        if charts_pdf is not None:
            plan = plan.with_default_charts(charts_pdf)

        results = run_analysis(plan)

    except (OSError, ValueError) as e:
        typer.secho(f"\n✗ Analysis failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho("\n✓ Analysis complete!", fg=typer.colors.GREEN)
    typer.echo(f"  Rows analysed: {results.dataset.n_rows}")
    if results.charts:
        typer.echo(f"  Charts: {results.charts['pdf']}")


if __name__ == "__main__":
    app()
