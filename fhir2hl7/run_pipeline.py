"""CLI entrypoint: FHIR JSON / NDJSON / server Bundle -> HL7 v2 files.

Examples:
  python -m fhir2hl7.run_pipeline --in bundle.json --out out
  python -m fhir2hl7.run_pipeline --generate 5 --seed 42 --config hl7.yaml
  python -m fhir2hl7.run_pipeline --fhir-url https://fhir.example.org --path 'Patient/1/$everything'
"""

from __future__ import annotations

import argparse
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import ConversionOptions, load_options
from .generators import gen_bundle, seed_all
from .io_handler import fetch_bundle, read_fhir_file, write_hl7
from .messages import convert_fhir_to_hl7
from .samples import sample_bundle

logger = logging.getLogger(__name__)


def resolve_options(args: argparse.Namespace) -> ConversionOptions:
    base = load_options(args.config) if args.config else ConversionOptions()
    return base.merged(
        sending_application=args.sending_app,
        sending_facility=args.sending_facility,
        receiving_application=args.receiving_app,
        receiving_facility=args.receiving_facility,
        processing_id=args.processing_id,
    )


def gather_inputs(args: argparse.Namespace) -> List[Tuple[str, Any]]:
    """(name, fhir input) pairs from every requested source."""
    inputs: List[Tuple[str, Any]] = []
    for path in args.inp or []:
        stem = os.path.splitext(os.path.basename(path))[0]
        inputs.extend((stem, doc) for doc in read_fhir_file(path))
    if args.fhir_url or args.path:
        if not (args.fhir_url and args.path):
            raise SystemExit("Both --fhir-url (or FHIR_BASE_URL env var) and --path are required to fetch.")
        inputs.append(("fetched", fetch_bundle(args.fhir_url, args.path, args.token)))
    if args.sample:
        inputs.append(("sample", sample_bundle()))
    if args.generate:
        seed_all(args.seed)
        inputs.extend(("generated", gen_bundle()) for _ in range(args.generate))
    return inputs


def run(
    inputs: Sequence[Tuple[str, Any]],
    options: ConversionOptions,
    out_dir: Optional[str] = None,
) -> Dict[str, Any]:
    logger.info("Converting %d FHIR input(s)", len(inputs))
    messages: Dict[str, List[str]] = {}
    for name, doc in inputs:
        messages.setdefault(name, []).append(convert_fhir_to_hl7(doc, options))

    written: List[str] = []
    if out_dir:
        run_ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        for name, msgs in messages.items():
            written.extend(write_hl7(msgs, out_dir, f"{name}_{run_ts}"))
    else:
        for msgs in messages.values():
            for msg in msgs:
                print(msg.replace("\r", "\n"))
                print()

    return {"messages": sum(len(m) for m in messages.values()), "written_files": written}


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Convert FHIR resources / Bundles into HL7 v2 ADT messages.")
    ap.add_argument("--in", dest="inp", nargs="*", default=[], help="FHIR JSON or NDJSON file(s)")
    ap.add_argument("--fhir-url", default=os.getenv("FHIR_BASE_URL", ""), help="FHIR server base URL")
    ap.add_argument("--path", default="", help="Server path returning a Bundle, e.g. 'Patient/1/$everything'")
    ap.add_argument("--token", default=os.getenv("FHIR_TOKEN", None), help="Bearer token (optional)")
    ap.add_argument("--sample", action="store_true", help="Convert the built-in sample Bundle")
    ap.add_argument("--generate", type=int, default=0, help="Convert N synthetic Bundles")
    ap.add_argument("--seed", type=int, default=None, help="Seed for deterministic synthetic data")
    ap.add_argument("--config", default=None, help="YAML file with header options")
    ap.add_argument("--sending-app", default=os.getenv("HL7_SENDING_APP"), help="MSH-3")
    ap.add_argument("--sending-facility", default=os.getenv("HL7_SENDING_FACILITY"), help="MSH-4")
    ap.add_argument("--receiving-app", default=os.getenv("HL7_RECEIVING_APP"), help="MSH-5")
    ap.add_argument("--receiving-facility", default=os.getenv("HL7_RECEIVING_FACILITY"), help="MSH-6")
    ap.add_argument("--processing-id", default=None, help="MSH-11 (P/T/D)")
    ap.add_argument("--out", default=None, help="Output folder (prints to stdout if omitted)")
    ap.add_argument("--log-level", default="WARNING", help="Logging level")
    return ap.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    inputs = gather_inputs(args)
    if not inputs:
        raise SystemExit("Nothing to convert: pass --in, --fhir-url/--path, --sample or --generate.")

    res = run(inputs, resolve_options(args), args.out)
    print("[OK]", {"messages": res["messages"], "written_files": len(res["written_files"]), "out": args.out})


if __name__ == "__main__":
    main()
