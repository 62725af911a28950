# Usage:
#   python -m dpi_checker.cli                      # targets.yaml at the project root
#   python -m dpi_checker.cli my_targets.yaml --concurrency 10 --json
#   python -m dpi_checker.cli --url https://example.com/ --url https://example.org/

import argparse
import asyncio
import signal
import aiohttp
from .metrics import CheckResult
from .prober import HttpProber
from .scheduler import run_all_checks
from .settings import PROJECT_ROOT, load_check_config
from .storage import export_json, results_to_df, save_df
from .targets import Target, custom_target, is_valid_https_url, load_targets
from .utils import summarize


def format_result(index: int, r: CheckResult) -> str:
    t = r.target
    return f"[{index:>3}] {r.status.value:<8} {t.provider:<13} {t.region:<16} {r.detail}"


async def run(args) -> list[CheckResult]:
    cfg = load_check_config(args.config)
    if args.concurrency is not None:
        cfg.concurrency = args.concurrency

    targets: list[Target] = []
    if args.targets or not args.url:
        targets.extend(load_targets(args.targets or PROJECT_ROOT / "targets.yaml"))
    targets.extend(custom_target(u) for u in args.url)

    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.set)
    except NotImplementedError:
        # add_signal_handler is not available on Windows event loops
        pass

    def on_result(index: int, r: CheckResult) -> None:
        if r.status.is_terminal:
            print(format_result(index, r))

    def on_progress(completed: int, total: int) -> None:
        print(f"[run] {completed}/{total} done")

    print(f"[run] checking {len(targets)} targets with concurrency {cfg.concurrency}")
    async with aiohttp.ClientSession(auto_decompress=False) as session:
        prober = HttpProber(session, cfg)
        results = await run_all_checks(
            targets, prober, cfg.concurrency,
            on_result=on_result, on_progress=on_progress,
            cancel=cancel, config=cfg,
        )

    if cancel.is_set():
        print("[run] cancelled, unfinished targets keep their last state")
    return results


def build_argparser():
    ap = argparse.ArgumentParser(description="Probe endpoints for mid-stream traffic interference")
    ap.add_argument("targets", nargs="?", help="YAML target catalog (default: targets.yaml)")
    ap.add_argument("--url", action="append", default=[], help="Extra https:// endpoint to check (repeatable)")
    ap.add_argument("--concurrency", type=int, default=None, help="Targets checked in parallel")
    ap.add_argument("--config", default=None, help="Path to check_config.yaml")
    ap.add_argument("--csv", default=None, metavar="NAME", help="Save results to results/NAME.csv")
    ap.add_argument("--json", action="store_true", help="Export results to a timestamped JSON file")
    return ap


def main(argv=None):
    ap = build_argparser()
    args = ap.parse_args(argv)
    if args.concurrency is not None and args.concurrency < 1:
        ap.error("--concurrency must be a positive integer")
    for u in args.url:
        if not is_valid_https_url(u):
            ap.error(f"not an absolute https:// URL: {u}")

    results = asyncio.run(run(args))

    counts = summarize(results)
    print("[run] " + ", ".join(f"{k}: {v}" for k, v in counts.items()))

    if args.csv:
        save_df(results_to_df(results), args.csv)
    if args.json:
        export_json(results)


if __name__ == "__main__":
    main()
