# aulab/cli.py
import argparse
import sys
import time
from pathlib import Path

from .batch import run_batch
from .core import Mode, SimConfig, SimulationIOError
from .pipeline import apply_loss_file
from .plan import load_plan
from .utils import log, setup


def _mode_from_arg(s) -> Mode:
    # anything but "repeat" falls back to silent
    if s is not None and str(s).strip().lower() == Mode.REPEAT.value:
        return Mode.REPEAT
    return Mode.SILENT

def config_from_args(args) -> SimConfig:
    mode = _mode_from_arg(args.mode)
    if args.byte:
        cfg = SimConfig.byte_granularity(mode, args.percent, header_length=args.header_length)
    else:
        cfg = SimConfig.packet_granularity(mode, args.packet_size, args.percent,
                                           header_length=args.header_length)
    return cfg.validate()

def _cmd_run(p: argparse.ArgumentParser, args) -> int:
    try:
        cfg = config_from_args(args)
    except ValueError as e:
        p.error(str(e))

    t0 = time.time()
    print("Processing file... ", end="", flush=True)
    try:
        res = apply_loss_file(args.infile, args.outfile, cfg, seed=args.seed)
    except SimulationIOError as e:
        print("failed.")
        log.error(f"{e} (cause: {e.__cause__!r})")
        return 1
    elapsed_ms = int((time.time() - t0) * 1000)
    print("done.")
    print(f"Task completed in {elapsed_ms}ms.")
    if args.verbose:
        log.info(f"[stats] {res}")
    return 0

def _cmd_batch(p: argparse.ArgumentParser, args) -> int:
    try:
        profiles = load_plan(args.plan)
    except (OSError, ValueError) as e:
        p.error(f"invalid plan {args.plan}: {e}")

    in_root = Path(args.in_root).resolve()
    out_root = Path(args.out_root).resolve()
    out_root.mkdir(parents=True, exist_ok=True)

    results = run_batch(
        in_root=in_root,
        out_root=out_root,
        profiles=profiles,
        seed=args.seed,
        workers=args.workers,
        backend=args.backend,
        limit=args.limit,
        resume=args.resume,
        verbose=args.verbose,
    )
    failed = sum(1 for r in results if r.get("status") == "error")
    log.info(f"[SUMMARY] files={len(results)} failed={failed}")
    return 1 if failed else 0

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="aulab", description="Simulate network loss on streaming .au audio")
    sub = p.add_subparsers(dest="command", required=True)

    r = sub.add_parser("run", help="Process one file")
    r.add_argument("infile", help="Input *.au file")
    r.add_argument("outfile", help="Output *.au file")
    r.add_argument("packet_size", type=int, help="Simulated packet size in bytes (ignored with --byte)")
    r.add_argument("percent", type=int, help="Simulated success rate [0-100]")
    r.add_argument("mode", nargs="?", default="silent",
                   help='"silent" or "repeat". Technique used to fill in lost segments.')
    r.add_argument("--byte", action="store_true", help="Apply loss per byte instead of per packet")
    r.add_argument("--header-length", dest="header_length", type=int, default=40)
    r.add_argument("--seed", type=int, default=None, help="random seed for reproducibility")
    r.add_argument("--verbose", action="store_true")
    r.add_argument("--log-dir", dest="log_dir", default=None, help="also write logs to this directory")
    r.set_defaults(handler=_cmd_run, parser=r)

    b = sub.add_parser("batch", help="Process every .au file under a directory")
    b.add_argument("--in-root", required=True)
    b.add_argument("--out-root", required=True)
    b.add_argument("--plan", required=True, help="YAML file listing simulation profiles")
    b.add_argument("--backend", choices=["threads", "processes"], default="threads")
    b.add_argument("--workers", type=int, default=4)
    b.add_argument("--seed", type=int, default=None)
    b.add_argument("--limit", type=int, default=None)
    b.add_argument("--verbose", action="store_true")
    b.add_argument("--resume", dest="resume", action="store_true",
                   help="Skip files already completed by an earlier run")
    b.add_argument("--log-dir", dest="log_dir", default=None, help="also write logs to this directory")
    b.set_defaults(handler=_cmd_batch, parser=b)
    return p

def main(argv=None) -> int:
    p = build_parser()
    args = p.parse_args(argv)
    setup(log_dir=args.log_dir, level="DEBUG" if args.verbose else "INFO")
    return args.handler(args.parser, args)


if __name__ == "__main__":
    sys.exit(main())
