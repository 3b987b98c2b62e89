"""Command-line interfaces for report generation."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Iterable

import matplotlib

from metareport.config import SUPPORTED_IMAGE_FORMATS, build_report_config, load_json_config
from metareport.core.bundle import load_bundle, save_bundle
from metareport.errors import BundleError
from metareport.pipeline.io import setup_logger
from metareport.pipeline.report import run_report
from metareport.plotting.styles import DEFAULT_PLOT_STYLE, apply_plot_style

DEFAULT_BUNDLE_PATH = "Science_advance.pkl"
DEFAULT_OUTDIR = "results"
SUMMARY_FILENAME = "report_summary.json"


def _collect_params(args: argparse.Namespace) -> dict[str, Any]:
    params: dict[str, Any] = load_json_config(args.config) if args.config else {}
    if args.format is not None:
        params["image_format"] = args.format
    if args.bootstrap_reps is not None:
        params["bootstrap_reps"] = args.bootstrap_reps
    if args.seed is not None:
        params["seed"] = args.seed
    return params


def run_main(argv: Iterable[str] | None = None) -> int:
    """Generate the report figures from a bundle.

    Args:
        argv: Command-line arguments (if None, uses sys.argv).

    Returns:
        Exit code (0 when the run completes; 1 with --fail-on-error if any
        task failed; 2 if the bundle cannot be read).
    """
    parser = argparse.ArgumentParser(description="Generate meta-analysis report figures")
    parser.add_argument("--bundle", default=None, help="Path to pickled dataset bundle")
    parser.add_argument("--outdir", default=None, help="Output directory root")
    parser.add_argument("--config", default=None, help="Optional JSON config")
    parser.add_argument(
        "--format", choices=SUPPORTED_IMAGE_FORMATS, default=None, help="Image format"
    )
    parser.add_argument("--bootstrap-reps", type=int, default=None, help="Summary ROC bootstrap replicates")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--log-file", default=None, help="Optional log file path")
    parser.add_argument(
        "--fail-on-error",
        action="store_true",
        help="Exit with status 1 if any figure failed to render",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)

    matplotlib.use("Agg")
    logger = setup_logger(Path(args.log_file) if args.log_file else None)
    params = _collect_params(args)
    config = build_report_config(params)
    bundle_path = args.bundle or params.get("bundle_path", DEFAULT_BUNDLE_PATH)
    outdir = Path(args.outdir or params.get("output_root", DEFAULT_OUTDIR))
    apply_plot_style(DEFAULT_PLOT_STYLE)

    try:
        bundle = load_bundle(bundle_path, logger=logger)
    except BundleError as exc:
        logger.error(exc.log_message())
        return 2

    summary = run_report(bundle, outdir, config=config, logger=logger)
    summary_path = summary.write_json(outdir / SUMMARY_FILENAME)
    logger.info("Wrote run summary to %s", summary_path.as_posix())

    if args.fail_on_error and summary.n_failed:
        return 1
    return 0


def demo_bundle_main(argv: Iterable[str] | None = None) -> int:
    """Write a synthetic bundle that exercises every report figure."""
    parser = argparse.ArgumentParser(description="Write a synthetic demo bundle")
    parser.add_argument("--out", default=DEFAULT_BUNDLE_PATH, help="Output pickle path")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    args = parser.parse_args(list(argv) if argv is not None else None)

    from metareport.simulate import make_demo_bundle

    out = save_bundle(make_demo_bundle(seed=args.seed), args.out)
    print(f"bundle={out.as_posix()}")
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="metareport CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Generate report figures from a bundle", add_help=False)
    sub.add_parser("demo-bundle", help="Write a synthetic demo bundle", add_help=False)

    args, remainder = parser.parse_known_args(list(argv) if argv is not None else None)
    if args.command == "run":
        return run_main(remainder)
    if args.command == "demo-bundle":
        return demo_bundle_main(remainder)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
