"""CLI entrypoints for the Ollama Compass agent, analysis, and daemon tools."""

from __future__ import annotations

import argparse
import json
import time
from importlib import metadata
from pathlib import Path

from compass_core import (
    AppConfig,
    CollaboratorUnavailable,
    DiagnosticsExporter,
    HardwareAnalyzer,
    build_doctor_payload,
    effective_ollama_host,
    load_config,
)
from compass_core.logging_setup import configure_logging, install_crash_hooks
from compass_ollama import OllamaMonitor
from compass_telemetry import InventoryProvider


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _installed_version() -> str:
    try:
        return metadata.version("ollama-compass")
    except metadata.PackageNotFoundError:
        return "1.0.0"


def _build_analyzer(cfg: AppConfig) -> HardwareAnalyzer:
    return HardwareAnalyzer(InventoryProvider(), queue_size=cfg.realtime.queue_size)


def _build_monitor(cfg: AppConfig) -> OllamaMonitor:
    return OllamaMonitor(
        host=effective_ollama_host(cfg),
        status_timeout_s=cfg.ollama.status_timeout_s,
        version_timeout_s=cfg.ollama.version_timeout_s,
        pull_timeout_s=cfg.ollama.pull_timeout_s,
        generate_timeout_s=cfg.ollama.generate_timeout_s,
    )


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .server import create_app

    cfg = load_config()
    install_crash_hooks()
    host = args.host or cfg.server.host
    port = args.port or cfg.server.port
    cfg.server.port = port
    app = create_app(_build_analyzer(cfg), _build_monitor(cfg), cfg, version=_installed_version())
    if not args.quiet:
        print(f"Ollama Compass agent running on port {port}")
        print(f"   API: http://{host}:{port}")
        print(f"   WebSocket: ws://{host}:{port}/ws")
    uvicorn.run(app, host=host, port=port, log_level="warning" if args.quiet else "info")
    return 0


def _print_analysis_text(analysis) -> None:
    facts, scores = analysis.facts, analysis.scores
    cpu, mem, gpu, storage = facts.cpu, facts.memory, facts.primary_gpu, facts.storage
    print(f"Fingerprint: {analysis.fingerprint}")
    print(f"Tier:        {analysis.tier.value} (score {scores.overall_score}/100)")
    print(
        f"CPU:         {cpu.brand} {cpu.model} "
        f"{cpu.physical_cores}C/{cpu.logical_cores}T @ {cpu.base_frequency_ghz} GHz"
    )
    print(f"Memory:      {mem.total_gb} GB {mem.type} @ {mem.speed_mhz} MHz")
    print(f"GPU:         {gpu.brand} {gpu.model} ({gpu.type.value}, {gpu.vram_gb} GB)")
    print(f"Storage:     {storage.storage_type} {storage.total_space_gb} GB ({storage.available_space_gb} GB free)")
    print("Scores:      " + " ".join(f"{k}={v}" for k, v in scores.to_dict().items()))


def cmd_analyze(args: argparse.Namespace) -> int:
    cfg = load_config()
    analyzer = _build_analyzer(cfg)
    try:
        analysis = analyzer.run_full_analysis()
    except CollaboratorUnavailable as exc:
        _print_json({"success": False, "error": str(exc)})
        return 1

    if args.json:
        _print_json(analysis.to_dict())
    else:
        _print_analysis_text(analysis)
    return 0


def cmd_realtime(args: argparse.Namespace) -> int:
    cfg = load_config()
    analyzer = _build_analyzer(cfg)
    sub = analyzer.subscribe()
    deadline = time.monotonic() + args.seconds
    received = 0
    try:
        while time.monotonic() < deadline:
            sample = sub.get(timeout=max(0.0, min(1.0, deadline - time.monotonic())))
            if sample is None:
                continue
            received += 1
            if args.json:
                print(json.dumps(sample.to_dict(), sort_keys=True, default=str))
            else:
                gpus = " ".join(f"gpu{i}={g.utilization_gpu_percent:.0f}%" for i, g in enumerate(sample.gpus))
                print(f"cpu={sample.cpu.usage_percent}% mem={sample.memory.usage_percent}% {gpus}".rstrip())
    except KeyboardInterrupt:
        pass
    finally:
        analyzer.close()
    return 0 if received else 1


def cmd_ollama_status(args: argparse.Namespace) -> int:
    status = _build_monitor(load_config()).check_status()
    if args.json:
        _print_json(status.to_dict())
        return 0
    if status.is_reachable:
        print(f"Ollama {status.version or 'Unknown'} reachable at {status.host}")
        print(f"Models installed: {len(status.models)}")
        for model in status.models:
            print(f"  - {model.name}")
    else:
        print(f"Ollama not reachable at {status.host}")
        if status.error is not None:
            print(f"  {status.error.type}: {status.error.message}")
            print(f"  {status.error.suggestion}")
        print(f"  {status.process.details}")
    return 0


def _operation_result(result) -> int:
    _print_json(result.to_dict())
    return 0 if result.success else 2


def cmd_ollama_install(args: argparse.Namespace) -> int:
    return _operation_result(_build_monitor(load_config()).install_model(args.model))


def cmd_ollama_delete(args: argparse.Namespace) -> int:
    return _operation_result(_build_monitor(load_config()).delete_model(args.model))


def cmd_ollama_info(args: argparse.Namespace) -> int:
    return _operation_result(_build_monitor(load_config()).model_info(args.model))


def cmd_ollama_test(args: argparse.Namespace) -> int:
    monitor = _build_monitor(load_config())
    return _operation_result(monitor.test_generation(args.model, args.prompt))


def cmd_doctor(args: argparse.Namespace) -> int:
    cfg = load_config()
    analyzer = _build_analyzer(cfg)
    try:
        analyzer.run_full_analysis()
    except CollaboratorUnavailable:
        pass  # already logged; the payload reports analysis as null
    payload = build_doctor_payload(cfg, analyzer=analyzer, monitor=_build_monitor(cfg))

    if args.export:
        exporter = DiagnosticsExporter()
        out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else None
        cached = analyzer.get_cached_analysis()
        bundle = exporter.bundle(
            cfg=cfg,
            doctor_payload=payload,
            recent_events=analyzer.broadcast.recent_events(),
            output_dir=out_dir,
            analysis=cached.to_dict() if cached is not None else None,
        )
        payload["diagnostics_bundle"] = str(bundle)

    _print_json(payload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ollama-compass",
        description="Local hardware analysis agent for choosing Ollama models",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve_cmd = sub.add_parser("serve", help="Run the local API and WebSocket server")
    serve_cmd.add_argument("--port", type=int, default=None, help="Listen port (default from config, 7171)")
    serve_cmd.add_argument("--host", default=None, help="Listen address (default from config)")
    serve_cmd.add_argument("--quiet", action="store_true", help="Reduce console output")
    serve_cmd.set_defaults(func=cmd_serve)

    analyze_cmd = sub.add_parser("analyze", help="Run a full hardware analysis")
    analyze_cmd.add_argument("--json", action="store_true", help="Print the analysis as JSON")
    analyze_cmd.set_defaults(func=cmd_analyze)

    rt_cmd = sub.add_parser("realtime", help="Stream live utilization samples")
    rt_cmd.add_argument("--seconds", type=int, default=10)
    rt_cmd.add_argument("--json", action="store_true", help="Print one JSON object per sample")
    rt_cmd.set_defaults(func=cmd_realtime)

    ollama_cmd = sub.add_parser("ollama", help="Local Ollama daemon tools")
    ollama_sub = ollama_cmd.add_subparsers(dest="ollama_cmd", required=True)

    status_cmd = ollama_sub.add_parser("status", help="Check daemon reachability and installed models")
    status_cmd.add_argument("--json", action="store_true")
    status_cmd.set_defaults(func=cmd_ollama_status)

    install_cmd = ollama_sub.add_parser("install", help="Pull a model")
    install_cmd.add_argument("model")
    install_cmd.set_defaults(func=cmd_ollama_install)

    delete_cmd = ollama_sub.add_parser("delete", help="Delete a model")
    delete_cmd.add_argument("model")
    delete_cmd.set_defaults(func=cmd_ollama_delete)

    info_cmd = ollama_sub.add_parser("info", help="Show model details")
    info_cmd.add_argument("model")
    info_cmd.set_defaults(func=cmd_ollama_info)

    test_cmd = ollama_sub.add_parser("test", help="Time a short generation")
    test_cmd.add_argument("model")
    test_cmd.add_argument("--prompt", default="Hello, how are you?")
    test_cmd.set_defaults(func=cmd_ollama_test)

    doctor_cmd = sub.add_parser("doctor", help="Print diagnostics")
    doctor_cmd.add_argument("--export", action="store_true", help="Export offline diagnostics bundle")
    doctor_cmd.add_argument("--out-dir", default=None, help="Optional output directory for diagnostics bundle")
    doctor_cmd.set_defaults(func=cmd_doctor)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    cfg = load_config()
    configure_logging(keep_files=cfg.diagnostics.keep_log_files, console=False)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
