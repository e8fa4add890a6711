#!/usr/bin/env python3
"""
VMD Motion Recorder - Main Entry Point

Plays a humanoid motion clip through the recorder and writes a VMD file
loadable in MikuMikuDance, or summarizes an existing VMD file.
"""

import argparse
import sys
from collections import Counter
from pathlib import Path

from vmdrec.core import Config, VMDRecorderError, setup_logging, get_logger
from vmdrec.export import read_vmd
from vmdrec.motion import load_clip, load_skeleton, record_clip


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Record humanoid motion clips into VMD files"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    record = subparsers.add_parser("record", help="Record a JSON clip into a VMD file")
    record.add_argument("clip", type=str, help="Input clip (.json)")
    record.add_argument(
        "--output", "-o",
        type=str,
        help="Output .vmd path (default: <export.output_dir>/<clip>.vmd)"
    )
    record.add_argument("--model-name", type=str, help="Model name written to the file")
    record.add_argument(
        "--key-reduction",
        type=int,
        help="Keep every Nth frame (overrides recorder.key_reduction_level)"
    )
    record.add_argument(
        "--retarget-to",
        type=str,
        help="Skeleton (.json) to retarget the clip onto before recording"
    )
    record.add_argument(
        "--realtime",
        action="store_true",
        help="Pace playback at the clip's frame rate"
    )

    inspect = subparsers.add_parser("inspect", help="Summarize a VMD file")
    inspect.add_argument("vmd", type=str, help="VMD file to read")

    return parser.parse_args(argv)


def run_record(args: argparse.Namespace, config: Config) -> int:
    logger = get_logger("main")

    if args.key_reduction is not None:
        config.set("recorder.key_reduction_level", args.key_reduction)
        logger.info(f"Key reduction override: {args.key_reduction}")

    clip = load_clip(args.clip)
    retarget_to = load_skeleton(args.retarget_to) if args.retarget_to else None

    if args.output:
        output_path = Path(args.output)
    else:
        output_dir = Path(config.get("export.output_dir", "./output"))
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / f"{Path(args.clip).stem}.vmd"

    result = record_clip(
        clip,
        output_path,
        config,
        retarget_to=retarget_to,
        model_name=args.model_name,
        realtime=args.realtime,
    )

    if not result.ok:
        logger.warning(f"Nothing written ({result.status.value})")
        return 1

    logger.info(
        f"Wrote {result.path}: {result.bone_key_count} bone keys, "
        f"{result.morph_key_count} morph keys, {result.bytes_written} bytes"
    )
    for name in result.skipped_names:
        logger.warning(f"Skipped morph {name!r}")
    for name in result.dropped_names:
        logger.warning(f"Dropped colliding morph {name!r}")
    return 0


def run_inspect(args: argparse.Namespace) -> int:
    logger = get_logger("main")
    motion = read_vmd(args.vmd)

    bone_counts = Counter(b.name for b in motion.bones)
    morph_counts = Counter(m.name for m in motion.morphs)
    last_frame = max([b.frame for b in motion.bones] + [m.frame for m in motion.morphs], default=0)

    logger.info(f"Model: {motion.model_name}")
    logger.info(f"Bone keys: {len(motion.bones)} across {len(bone_counts)} bones")
    logger.info(f"Morph keys: {len(motion.morphs)} across {len(morph_counts)} morphs")
    logger.info(f"Last frame: {last_frame}")
    for name, count in sorted(bone_counts.items(), key=lambda item: -item[1]):
        logger.debug(f"  {name}: {count}")
    for ik in motion.ik:
        states = ", ".join(f"{name}={'on' if on else 'off'}" for name, on in ik.states.items())
        logger.info(f"IK @{ik.frame}: {states}")
    return 0


def main(argv=None) -> int:
    """Main application entry point."""
    args = parse_args(argv)

    config_path = Path(args.config)
    if not config_path.is_absolute():
        config_path = Path(__file__).parent / config_path

    try:
        config = Config(str(config_path))
    except FileNotFoundError:
        print(f"Error: Config file not found: {config_path}")
        return 1

    log_level = "DEBUG" if args.debug else config.get("app.log_level", "INFO")
    subsystem_levels = config.get("app.log_levels")
    if args.debug:
        # --debug lifts the per-subsystem caps as well
        subsystem_levels = {name: "DEBUG" for name in (subsystem_levels or {})}
    setup_logging(
        level=log_level,
        log_file=config.get("app.log_file"),
        log_dir=config.get("app.log_dir", "logs"),
        subsystem_levels=subsystem_levels,
        export_worker_level=config.get("app.export_worker_log_level", "WARNING"),
    )
    logger = get_logger("main")

    logger.info("=" * 50)
    logger.info(f"VMD Motion Recorder v{config.get('app.version', '0.1.0')}")
    logger.info("=" * 50)

    try:
        if args.command == "record":
            return run_record(args, config)
        return run_inspect(args)
    except (VMDRecorderError, ValueError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
