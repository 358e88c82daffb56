"""Command-line interface for the spam filter.

Provides ``train``, ``evaluate``, ``classify``, and ``features`` commands
with rich terminal output using the ``click`` and ``rich`` libraries.

Usage::

    spamfilter train traindata/ model.json
    spamfilter train traindata/ model.json 0.002 0.19
    spamfilter evaluate --folds 5 traindata/
    spamfilter classify model.json inbox/*.eml
    spamfilter features --top 15 model.json
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .classifiers import CLASSIFIERS, get_classifier
from .config import Settings
from .corpus import list_corpus
from .evaluation import CrossValidationResult, CrossValidator
from .models import EmailClass
from .pipeline import EmailClassifier
from .weighting import WEIGHTINGS, get_weighting

console = Console()
err_console = Console(stderr=True)

_PERCENTILE = click.FloatRange(0.0, 1.0)


def _get_class_style(cls: EmailClass) -> str:
    """Return a rich style string for a predicted class."""
    return {
        EmailClass.SPAM: "bold red",
        EmailClass.HAM: "bold green",
    }.get(cls, "")


def _configure_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _fail(error: Exception) -> NoReturn:
    console.print(f"[bold red]Error:[/] {escape(str(error))}")
    sys.exit(1)


def _build_pipeline(
    settings: Settings,
    weighting: Optional[str],
    classifier: Optional[str],
    alpha: Optional[float],
    preprocessing: bool,
    feature_selection: bool,
) -> EmailClassifier:
    classifier_name = classifier or settings.classifier
    kwargs = {}
    if classifier_name == "naive_bayes":
        kwargs["alpha"] = alpha if alpha is not None else settings.alpha
    return EmailClassifier(
        classifier=get_classifier(classifier_name, **kwargs),
        weighting=get_weighting(weighting or settings.weighting),
        use_text_preprocessing=preprocessing,
        use_feature_selection=feature_selection,
    )


def _pipeline_options(func):
    """Options shared by commands that train a pipeline."""
    options = [
        click.option("--weighting", "-w", type=click.Choice(sorted(WEIGHTINGS)), default=None,
                     help="Feature weighting strategy."),
        click.option("--classifier", "-c", type=click.Choice(sorted(CLASSIFIERS)), default=None,
                     help="Classifier variant."),
        click.option("--alpha", type=click.FloatRange(min=0.0, min_open=True), default=None,
                     help="Naive Bayes smoothing parameter."),
        click.option("--no-preprocessing", is_flag=True, default=False,
                     help="Index raw words without normalization."),
        click.option("--no-feature-selection", is_flag=True, default=False,
                     help="Keep every term regardless of document frequency."),
        click.option("--workers", type=click.IntRange(min=1), default=None,
                     help="Worker threads for parsing and folds."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(package_name="spamfilter")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """📧 Spam Filter: train and evaluate a ham/spam e-mail classifier.

    Builds term statistics from a labelled corpus, selects features by
    document frequency, and trains a Naive Bayes model.
    """
    try:
        settings = Settings.from_env()
    except ValueError as e:
        _fail(e)
    _configure_logging(logging.DEBUG if verbose else settings.logging_level)
    ctx.obj = settings


@main.command()
@click.argument("corpus", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("lower", type=_PERCENTILE, required=False)
@click.argument("upper", type=_PERCENTILE, required=False)
@click.option("--folds", "-k", type=click.IntRange(min=2), default=None,
              help="Cross-validation folds.")
@click.option("--skip-cv", is_flag=True, default=False, help="Skip cross-validation.")
@click.option("--seed", type=int, default=None, help="Shuffle seed for fold assignment.")
@_pipeline_options
@click.pass_obj
def train(
    settings: Settings,
    corpus: Path,
    output: Path,
    lower: Optional[float],
    upper: Optional[float],
    folds: Optional[int],
    skip_cv: bool,
    seed: Optional[int],
    weighting: Optional[str],
    classifier: Optional[str],
    alpha: Optional[float],
    no_preprocessing: bool,
    no_feature_selection: bool,
    workers: Optional[int],
) -> None:
    """Cross-validate, then train a model on CORPUS and save it to OUTPUT.

    LOWER and UPPER are the optional document-frequency percentiles used
    for feature selection.

    Example: spamfilter train traindata/ model.json 0.002 0.19
    """
    lower = settings.lower_percentile if lower is None else lower
    upper = settings.upper_percentile if upper is None else upper
    k = folds or settings.folds
    n_workers = workers or settings.workers

    try:
        pipeline = _build_pipeline(
            settings, weighting, classifier, alpha,
            not no_preprocessing, not no_feature_selection,
        )
        files = list_corpus(corpus)

        if not skip_cv:
            console.print(f"Performing cross-validation on {k} folds...")
            validator = CrossValidator(
                pipeline, k=k, seed=seed if seed is not None else settings.seed,
                workers=n_workers,
            )
            with console.status("[bold blue]Cross-validating...", spinner="dots"):
                result = validator.evaluate(files, lower, upper)
            _render_cross_validation(result)

        console.print("Finished testing, performing final train step...")
        with console.status("[bold blue]Training...", spinner="dots"):
            pipeline.train(files, lower, upper, workers=n_workers)
        console.print(f"Feature Dimensions = {pipeline.term_count}")

        pipeline.save(output)
    except Exception as e:
        _fail(e)

    console.print(f"Saved model to {output}")


@main.command()
@click.argument("corpus", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("lower", type=_PERCENTILE, required=False)
@click.argument("upper", type=_PERCENTILE, required=False)
@click.option("--folds", "-k", type=click.IntRange(min=2), default=None,
              help="Cross-validation folds.")
@click.option("--seed", type=int, default=None, help="Shuffle seed for fold assignment.")
@click.option("--stratify", is_flag=True, default=False,
              help="Balance class distribution across folds.")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@_pipeline_options
@click.pass_obj
def evaluate(
    settings: Settings,
    corpus: Path,
    lower: Optional[float],
    upper: Optional[float],
    folds: Optional[int],
    seed: Optional[int],
    stratify: bool,
    output: str,
    weighting: Optional[str],
    classifier: Optional[str],
    alpha: Optional[float],
    no_preprocessing: bool,
    no_feature_selection: bool,
    workers: Optional[int],
) -> None:
    """Run k-fold cross-validation on CORPUS without saving a model.

    Example: spamfilter evaluate --folds 5 traindata/
    """
    lower = settings.lower_percentile if lower is None else lower
    upper = settings.upper_percentile if upper is None else upper

    try:
        pipeline = _build_pipeline(
            settings, weighting, classifier, alpha,
            not no_preprocessing, not no_feature_selection,
        )
        validator = CrossValidator(
            pipeline,
            k=folds or settings.folds,
            seed=seed if seed is not None else settings.seed,
            stratify=stratify,
            workers=workers or settings.workers,
        )
        with console.status("[bold blue]Cross-validating...", spinner="dots"):
            result = validator.evaluate(list_corpus(corpus), lower, upper)
    except Exception as e:
        _fail(e)

    if output == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _render_cross_validation(result)


@main.command()
@click.argument("model", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("files", nargs=-1, required=True,
                type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
def classify(model: Path, files: tuple[Path, ...], output: str) -> None:
    """Classify message FILES with a saved MODEL.

    Example: spamfilter classify model.json inbox/*.eml
    """
    try:
        pipeline = EmailClassifier.load(model)
        rows = []
        for file in files:
            email = pipeline.load_email(file)
            rows.append((file, pipeline.classify(email), pipeline.spam_probability(email)))
    except Exception as e:
        _fail(e)

    if output == "json":
        click.echo(json.dumps([
            {
                "file": str(file),
                "class": predicted.value,
                "spam_probability": round(prob, 4) if prob is not None else None,
            }
            for file, predicted, prob in rows
        ], indent=2))
        return

    table = Table(title=f"Classification: {model.name}")
    table.add_column("File", style="white")
    table.add_column("Class", justify="center", width=8)
    table.add_column("P(spam)", justify="right", width=8)
    for file, predicted, prob in rows:
        table.add_row(
            escape(file.name),
            f"[{_get_class_style(predicted)}]{predicted.value.upper()}[/]",
            f"{prob:.2%}" if prob is not None else "-",
        )
    console.print(table)


@main.command()
@click.argument("model", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--top", "-n", type=click.IntRange(min=1), default=20,
              help="Number of terms per class.")
def features(model: Path, top: int) -> None:
    """Show the most discriminative terms of a saved MODEL.

    Example: spamfilter features --top 15 model.json
    """
    try:
        pipeline = EmailClassifier.load(model)
        ranked = pipeline.top_features(top)
    except Exception as e:
        _fail(e)

    if ranked is None:
        console.print(
            f"[yellow]Classifier '{pipeline.classifier.name}' does not support feature ranking.[/]"
        )
        return

    spam_terms, ham_terms = ranked
    table = Table(title=f"Most informative terms: {model.name}")
    table.add_column("#", justify="right", width=4)
    table.add_column("Spam", style="red")
    table.add_column("Ham", style="green")
    for i in range(max(len(spam_terms), len(ham_terms))):
        table.add_row(
            str(i + 1),
            escape(spam_terms[i]) if i < len(spam_terms) else "",
            escape(ham_terms[i]) if i < len(ham_terms) else "",
        )
    console.print(table)


# ------------------------------------------------------------------
# Rich rendering helpers
# ------------------------------------------------------------------

def _render_cross_validation(result: CrossValidationResult) -> None:
    """Render the combined confusion matrix and fold statistics."""
    combined = result.combined

    matrix = Table(title=f"Combined Confusion Matrix ({result.k} folds)")
    matrix.add_column("", style="bold")
    matrix.add_column("Predicted ham", justify="right")
    matrix.add_column("Predicted spam", justify="right")
    for true in EmailClass:
        matrix.add_row(
            f"True {true.value}",
            str(combined.count(true, EmailClass.HAM)),
            str(combined.count(true, EmailClass.SPAM)),
        )
    console.print(matrix)

    metrics = Table(show_header=True)
    metrics.add_column("Class", style="cyan")
    metrics.add_column("Precision", justify="right")
    metrics.add_column("Recall", justify="right")
    metrics.add_column("F1", justify="right")
    for cls in EmailClass:
        metrics.add_row(
            cls.value,
            f"{combined.precision(cls):.4f}",
            f"{combined.recall(cls):.4f}",
            f"{combined.f1(cls):.4f}",
        )
    console.print(metrics)

    console.print(Panel(
        f"Accuracy: {combined.accuracy:.2%} ({combined.correct}/{combined.total})\n"
        f"Mean fold accuracy: {result.mean_accuracy:.4f}\n"
        f"StdDev: {result.std_dev:f}",
        title="Cross-validation",
        border_style="blue",
    ))


if __name__ == "__main__":
    main()
