"""Protocol comparison runs: one instrumented flow per protocol and topology."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from flowtrace.config import PROTOCOLS, LossStrategy, SimulationConfig, TopologyKind
from flowtrace.core.simulator import Simulator
from flowtrace.core.types import METRIC_NAMES, FlowId, ProtocolName
from flowtrace.errors import AttachmentTimeoutError
from flowtrace.host.apps import BulkSendApplication, PacketSink
from flowtrace.host.congestion import WINDOW_LAWS
from flowtrace.host.link import BottleneckLink
from flowtrace.host.topology import build_topology, path_profile
from flowtrace.host.transport import StreamSocket
from flowtrace.metrics.recorder import FlowRecorder, series_path
from flowtrace.metrics.sampler import MetricSampler, PacketLossSampler
from flowtrace.trace.attacher import AttachmentState, HookAttacher
from flowtrace.trace.state import TraceContext

if TYPE_CHECKING:
    import argparse
    from collections.abc import Sequence
    from pathlib import Path

    from flowtrace.host.apps import TxCallback
    from flowtrace.host.topology import PathProfile, Topology
    from flowtrace.metrics.results import FlowResults

logger = logging.getLogger(__name__)


@dataclass
class FlowHarness:
    """A wired but not yet run protocol flow."""

    config: SimulationConfig
    simulator: Simulator
    topology: Topology
    path: PathProfile
    app: BulkSendApplication
    sink: PacketSink
    context: TraceContext
    attacher: HookAttacher
    recorder: FlowRecorder
    metric_sampler: MetricSampler
    loss_sampler: PacketLossSampler


def build_flow(config: SimulationConfig, output_dir: Path | None = None) -> FlowHarness:
    """Build the host, the per-run trace context and all instrumentation.

    The recorder opens its sinks first: if an output file cannot be
    created nothing else is built.
    """
    recorder = FlowRecorder(config.protocol, output_dir)

    simulator = Simulator(seed=config.seed)
    topology = build_topology(config.topology)
    path = path_profile(topology)

    link = BottleneckLink(
        simulator,
        rate_bps=path.bottleneck_bps,
        delay=path.one_way_delay,
        queue_packets=config.queue_packets,
    )
    sink = PacketSink()
    window_law = WINDOW_LAWS[config.protocol]
    segment_size = config.instrumentation.segment_size

    def open_socket(on_tx: TxCallback) -> StreamSocket:
        return StreamSocket(
            simulator,
            link,
            window_law(segment_size),
            deliver=sink.receive,
            on_tx=on_tx,
            reverse_delay=path.one_way_delay,
            address=topology.client,
        )

    # The socket appears once the handshake round trip completes
    app = BulkSendApplication(simulator, open_socket, connect_delay=path.base_rtt)

    context = TraceContext(
        simulator=simulator,
        config=config.instrumentation,
        protocol=ProtocolName(config.protocol),
        flow_id=FlowId(f"{config.protocol}/{config.topology.value}"),
    )
    app.connect_tx(context.counters.on_send)
    sink.connect_rx(context.counters.on_receive)

    attacher = HookAttacher(context)
    metric_sampler = MetricSampler(
        context,
        cwnd=recorder.cwnd,
        rtt=recorder.rtt,
        throughput=recorder.throughput,
    )
    loss_sampler = PacketLossSampler(context, recorder.packetloss)

    app.start(config.app_start)
    app.stop(config.duration)
    attacher.attach_later(app, config.instrumentation.attach_start)
    metric_sampler.start()
    loss_sampler.start()

    return FlowHarness(
        config=config,
        simulator=simulator,
        topology=topology,
        path=path,
        app=app,
        sink=sink,
        context=context,
        attacher=attacher,
        recorder=recorder,
        metric_sampler=metric_sampler,
        loss_sampler=loss_sampler,
    )


def teardown(harness: FlowHarness) -> FlowResults:
    """Stop sampling, give up on pending hooks and close every stream.

    Runs after the simulator stopped dispatching, so nothing here may rely on
    further callbacks.
    """
    harness.metric_sampler.stop()
    harness.loss_sampler.stop()
    harness.attacher.abandon()

    config = harness.config
    results = harness.recorder.finalize(
        harness.context,
        topology=config.topology.value,
        duration=config.duration,
        request=harness.attacher.request,
        metric_sampler=harness.metric_sampler,
        loss_sampler=harness.loss_sampler,
    )

    if (
        config.instrumentation.require_attachment
        and harness.attacher.state is not AttachmentState.ATTACHED
    ):
        raise AttachmentTimeoutError(
            f"flow {harness.context.flow_id} never attached its congestion hooks"
        )
    return results


def run_harness(harness: FlowHarness) -> FlowResults:
    try:
        harness.simulator.run(until=harness.config.duration)
    except BaseException:
        harness.recorder.close()
        raise
    return teardown(harness)


def run_flow(config: SimulationConfig, output_dir: Path | None = None) -> FlowResults:
    """Run one instrumented protocol flow and write its four series."""
    logger.info(
        "running %s on %s topology for %.1fs",
        config.protocol,
        config.topology.value,
        config.duration,
    )
    return run_harness(build_flow(config, output_dir))


def outputs_exist(output_dir: Path, protocol: str) -> bool:
    """True if all four series of `protocol` exist and are non-empty."""
    for metric in METRIC_NAMES:
        path = series_path(output_dir, protocol, metric)
        if not path.is_file() or path.stat().st_size == 0:
            return False
    return True


def run_comparison(
    config: SimulationConfig,
    output_dir: Path,
    protocols: Sequence[str] = PROTOCOLS,
    skip_existing: bool = False,
) -> dict[str, FlowResults | None]:
    """Run every protocol with the same topology, seed and instrumentation.

    With `skip_existing`, a protocol whose series are already on disk is not
    simulated again and maps to None.
    """
    results: dict[str, FlowResults | None] = {}
    for protocol in protocols:
        if skip_existing and outputs_exist(output_dir, protocol):
            logger.info("series for %s already exist in %s, skipping", protocol, output_dir)
            results[protocol] = None
            continue
        results[protocol] = run_flow(config.with_protocol(protocol), output_dir)
    return results


def _config_from_args(args: argparse.Namespace) -> SimulationConfig:
    config = SimulationConfig.from_toml(args.config) if args.config else SimulationConfig()

    overrides: dict[str, object] = {}
    if args.topology is not None:
        overrides["topology"] = args.topology
    if args.duration is not None:
        overrides["duration"] = args.duration
    if args.seed is not None:
        overrides["seed"] = args.seed

    instrumentation: dict[str, object] = {}
    if args.sample_period is not None:
        instrumentation["sample_period"] = args.sample_period
    if args.loss_sample_period is not None:
        instrumentation["loss_sample_period"] = args.loss_sample_period
    if args.loss_strategy is not None:
        instrumentation["loss_strategy"] = args.loss_strategy
    if instrumentation:
        overrides["instrumentation"] = replace(config.instrumentation, **instrumentation)

    return replace(config, **overrides) if overrides else config


def main(argv: Sequence[str] | None = None) -> None:
    """Run the protocol comparison and print a summary per flow."""
    import argparse
    from pathlib import Path

    from flowtrace.logconfig import configure_logging

    parser = argparse.ArgumentParser(
        description="Compare congestion control protocols on a simulated topology"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to TOML configuration file",
    )
    parser.add_argument(
        "--topology",
        choices=[kind.value for kind in TopologyKind],
        help="Network topology (default: point-to-point)",
    )
    parser.add_argument(
        "--protocol",
        action="append",
        choices=PROTOCOLS,
        help="Protocol to run; repeat for several (default: all)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        help="Simulated seconds per run",
    )
    parser.add_argument(
        "--sample-period",
        type=float,
        help="Seconds between throughput/RTT/cwnd samples",
    )
    parser.add_argument(
        "--loss-sample-period",
        type=float,
        help="Seconds between packet loss samples",
    )
    parser.add_argument(
        "--loss-strategy",
        choices=[strategy.value for strategy in LossStrategy],
        help="Packet loss accounting (default: event-count)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("flowtrace_output"),
        help="Directory for <protocol>.<metric> files (default: flowtrace_output)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed shared by every run",
    )
    parser.add_argument(
        "--skip-existing",
        action="store_true",
        help="Do not rerun a protocol whose four series already exist",
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Write a comparison chart after the runs",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    config = _config_from_args(args)
    protocols = tuple(args.protocol) if args.protocol else PROTOCOLS
    args.output_dir.mkdir(parents=True, exist_ok=True)

    results = run_comparison(config, args.output_dir, protocols, args.skip_existing)

    for protocol, result in results.items():
        if result is None:
            print(f"[{protocol}] skipped, series already in {args.output_dir}")
            continue
        print(
            f"[{protocol}] {result.topology}: "
            f"total bytes received {result.bytes_received}, "
            f"mean throughput {result.mean_throughput_mbps:.3f} Mbps, "
            f"final loss {result.final_loss_percent:.2f}%, "
            f"hooks {result.attachment_state.lower()}"
        )

    if args.plot:
        from flowtrace.report.plot import plot_comparison

        chart = plot_comparison(
            args.output_dir,
            protocols,
            args.output_dir / f"comparison_{config.topology.value}.png",
            title=f"{' vs '.join(protocols)} ({config.topology.value})",
        )
        if chart is not None:
            print(f"Comparison chart: {chart}")


if __name__ == "__main__":
    main()
