# aulab/batch.py
from pathlib import Path
from concurrent.futures import Executor, Future, ThreadPoolExecutor, ProcessPoolExecutor, as_completed
import multiprocessing as mp
from typing import List, Dict, Any, Optional

from .pipeline import apply_loss_file
from .plan import Profile
from .utils import atomic_write_json, ensure_dir, log, now_iso


def collect_audio(in_root: Path) -> List[Path]:
    """All *.au files below in_root (case-insensitive suffix), sorted."""
    return sorted(p for p in in_root.rglob("*") if p.is_file() and p.suffix.lower() == ".au")

def _out_paths(in_path: Path, in_root: Path, out_root: Path, profile_name: str):
    """
    Output rules:
      - <out_root>/<profile>/<relative path of input>
      - Metadata sits next to it as <name>.metadata.json.
    """
    rel = in_path.relative_to(in_root)
    out_path = out_root / profile_name / rel
    meta = out_path.parent / f"{in_path.name}.metadata.json"
    return out_path.parent, out_path, meta

def process_single(in_path: Path, in_root: Path, out_root: Path, profile: Profile,
                   seed: Optional[int] = None, resume: bool = False) -> Dict[str, Any]:
    out_dir, out_path, meta_path = _out_paths(in_path, in_root, out_root, profile.name)
    ensure_dir(out_dir)
    # metadata is written only after a successful run, so it marks completion
    if resume and meta_path.exists() and out_path.exists():
        return {"input": str(in_path), "output": str(out_path), "profile": profile.name,
                "skipped": True, "reason": "completed"}

    res = apply_loss_file(str(in_path), str(out_path), profile.config, seed=seed)
    meta = {
        "audio_file": in_path.name,
        "input": str(in_path),
        "output": str(out_path),
        "profile": profile.name,
        "config": profile.config.as_dict(),
        "seed": seed,
        "timestamp": now_iso(),
        "elapsed_sec": res.pop("elapsed_sec"),
        "stats": res,
    }
    atomic_write_json(meta_path, meta)
    log.debug(f"Metadata for {in_path.name}: {meta}")
    return meta

def _task(args):
    return process_single(*args)


class _SerialExecutor(Executor):
    def submit(self, fn, *args, **kwargs):
        f = Future()
        try:
            f.set_result(fn(*args, **kwargs))
        except Exception as e:
            f.set_exception(e)
        return f


def run_batch(in_root: Path, out_root: Path, profiles: List[Profile], seed: Optional[int] = None,
              workers: int = 4, backend: str = "threads", limit: Optional[int] = None,
              resume: bool = False, verbose: bool = False) -> List[Dict[str, Any]]:
    files = collect_audio(in_root)
    if limit:
        files = files[:limit]
    if not files:
        log.warning(f"No .au files found under {in_root}")

    tasks = [(p, in_root, out_root, prof, seed, resume) for prof in profiles for p in files]

    if workers <= 1:
        executor = _SerialExecutor()
    elif backend == "processes":
        executor = ProcessPoolExecutor(max_workers=workers, mp_context=mp.get_context("spawn"))
    else:
        executor = ThreadPoolExecutor(max_workers=workers)

    results = []
    with executor as ex:
        fut2t = {ex.submit(_task, t): t for t in tasks}
        for fut in as_completed(fut2t):
            p, prof = fut2t[fut][0], fut2t[fut][3]
            try:
                r = fut.result()
                results.append(r)
                if verbose:
                    if r.get("skipped"):
                        log.info(f"[SKIP] {prof.name}/{p.name} -> completed")
                    else:
                        log.info(f"[DONE] {prof.name}/{p.name} in {r.get('elapsed_sec', '?')}s "
                                 f"units={r['stats'].get('units_in', '?')} lost={r['stats'].get('lost', '?')}")
            except Exception as e:
                results.append({"status": "error", "input": str(p), "profile": prof.name, "error": str(e)})
                log.error(f"[FAIL] {prof.name}/{p.name}: {e}")
    return results
