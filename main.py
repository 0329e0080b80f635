# main.py
import argparse
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

from config import CFG
from net import HTTP, Http


def setup_logging(level: str, log_file: str = "") -> None:
    """
    Unified logging setup:
    - App logs -> console (+ file when LOG_FILE is set)
    - urllib3 connection chatter -> WARNING+
    """
    level = level.upper()

    root = logging.getLogger()
    root.handlers.clear()  # avoid duplicate handlers on re-init
    root.setLevel(getattr(logging, level, logging.INFO))

    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s",
        "%Y-%m-%d %H:%M:%S",
    )

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        fh.setLevel(getattr(logging, level, logging.INFO))
        root.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    ch.setLevel(getattr(logging, level, logging.INFO))
    root.addHandler(ch)

    for name in ("urllib3", "requests"):
        logging.getLogger(name).setLevel(logging.WARNING)

    root.debug(f"[LOG] logging initialized (level={level}, file={log_file or '-'})")


def _parse_header(raw: str):
    name, sep, value = raw.partition(":")
    if not sep:
        raise argparse.ArgumentTypeError(f"header must look like 'Name: value', got {raw!r}")
    return name.strip(), value.strip()


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="GET/POST with timeout and Retry-After handling")
    p.add_argument("method", choices=["get", "post"])
    p.add_argument("url")
    p.add_argument("body", nargs="?", default="")
    p.add_argument("-H", "--header", action="append", type=_parse_header, default=[])
    p.add_argument("--timeout-ms", type=int, default=None)
    p.add_argument("--json", action="store_true", help="decode the body as a JSON object")
    p.add_argument("--array", action="store_true", help="with --json on GET: expect a JSON array")
    return p


def run(argv: Optional[List[str]] = None, http: Optional[Http] = None) -> int:
    args = build_parser().parse_args(argv)
    http = http or HTTP

    if args.method == "get":
        if args.json and args.array:
            result, err = http.get_json_array(args.url, timeout_ms=args.timeout_ms).wait()
        elif args.json:
            result, err = http.get_json_object(args.url, timeout_ms=args.timeout_ms).wait()
        else:
            result, err = http.get(args.url, timeout_ms=args.timeout_ms).wait()
    elif args.json:
        result, err = http.post_json_object(args.url, args.body, args.header,
                                            timeout_ms=args.timeout_ms).wait()
    else:
        result, err = http.post(args.url, args.body, args.header,
                                timeout_ms=args.timeout_ms).wait()

    if err is not None:
        print(f"error ({err.kind.value}): {err}", file=sys.stderr)
        return 1
    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        print(result.text)
    return 0


def cli() -> int:
    setup_logging(CFG.log_level, CFG.log_file)
    return run()


if __name__ == "__main__":
    sys.exit(cli())
