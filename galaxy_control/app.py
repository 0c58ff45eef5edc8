"""
Galaxy Hand Control
Main application.

Architecture:
    - RefreshScheduler fires once per displayed frame (default 60 Hz)
    - The hand model loads on a worker thread while the galaxy already renders
    - FrameSynchronizer polls the webcam on each refresh and runs the
      hand detector only when a new video frame has arrived
    - GesturePipeline turns landmarks into a smoothed orbital camera pose
    - GalaxyRenderer + StatusPanel draw the galaxy and HUD with OpenCV

Usage:
    galaxy-hand-control                # ./config/config.yaml
    python -m galaxy_control --camera 1
    python main.py --refresh-hz 30     # From a source checkout
    python main.py --no-preview        # Hide the webcam thumbnail

Keys:
    q / Esc   quit
    p         print performance report
"""

import time
import signal
import argparse
import logging
import threading
from typing import Optional

import cv2

from galaxy_control import __version__
from galaxy_control.core.errors import DetectorUnavailable
from galaxy_control.core.events import EventBus, Events
from galaxy_control.core.pipeline import GesturePipeline
from galaxy_control.core.scheduler import RefreshScheduler, RepeatingTask
from galaxy_control.core.types import PipelineState, TrackingStatus
from galaxy_control.modules.capture.frame_synchronizer import FrameSynchronizer
from galaxy_control.modules.capture.video_source import VideoSource, VideoSourceConfig
from galaxy_control.modules.control.smoothing_controller import SmoothingConfig, SmoothingController
from galaxy_control.modules.detection.hand_detector import HandDetector, HandDetectorConfig
from galaxy_control.modules.scene.galaxy import (
    GalaxyConfig, StarfieldConfig, generate_galaxy, generate_starfield,
)
from galaxy_control.modules.utils.config import Config, config_value
from galaxy_control.modules.utils.logger import TrackingLogger, setup_logging
from galaxy_control.modules.utils.performance_monitor import PerformanceMonitor
from galaxy_control.modules.visualization.dashboard import StatusPanel
from galaxy_control.modules.visualization.renderer import GalaxyRenderer, RendererConfig

logger = logging.getLogger(__name__)

_KEY_ESC = 27


class GalaxyHandControl:
    """Main application wiring capture, detection, control and rendering.

    Startup, polling and rendering are all repeating tasks on one
    RefreshScheduler driven by _run(), so the camera state is only ever
    touched from the main thread. The detector load is the one job that
    runs elsewhere; the startup task picks up its outcome.
    """

    def __init__(self, config: Config):
        self._config = config
        self._running = False
        self._start_time = time.perf_counter()

        display = config.display
        self._window_name = display.get("window_name", "Galaxy Hand Control")
        self._refresh_hz = config_value(display, "display", "refresh_hz", 60.0)

        # --- Shared state / infrastructure ---
        self._bus = EventBus()
        self._state = PipelineState()
        self._scheduler = RefreshScheduler()
        self._perf = PerformanceMonitor(window_size=120)
        self._tracking_logger = TrackingLogger()

        # --- Capture / detection ---
        self._source = VideoSource(VideoSourceConfig.from_dict(config.camera))
        self._detector = HandDetector(HandDetectorConfig.from_dict(config.detector))
        self._loader: Optional[threading.Thread] = None
        self._load_error: Optional[Exception] = None

        # --- Control ---
        self._controller = SmoothingController(SmoothingConfig.from_dict(config.controller))
        self._pipeline = GesturePipeline(self._controller, self._bus, self._state)
        self._synchronizer = FrameSynchronizer(
            self._source, self._detector, self._pipeline.on_detection,
            performance_monitor=self._perf,
        )

        # --- Scene / visualization ---
        galaxy_cfg = GalaxyConfig.from_dict(config.galaxy)
        self._renderer = GalaxyRenderer(
            generate_galaxy(galaxy_cfg),
            generate_starfield(StarfieldConfig.from_dict(config.starfield)),
            RendererConfig.from_dict(display),
            point_size=galaxy_cfg.size,
            rotation_speed=galaxy_cfg.rotation_speed,
        )
        self._panel = StatusPanel(display)
        self._startup_task = RepeatingTask(self._scheduler, self._check_startup, name="startup")
        self._render_task = RepeatingTask(self._scheduler, self._render_frame, name="render")

        # --- Wire event callbacks ---
        self._bus.subscribe(Events.HAND_DETECTED, self._tracking_logger.on_hand_detected)
        self._bus.subscribe(Events.HAND_LOST, self._tracking_logger.on_hand_lost)
        self._bus.subscribe(Events.DETECTOR_FAILED, self._tracking_logger.on_detector_failed)
        self._bus.subscribe(Events.CAMERA_ERROR, self._tracking_logger.on_camera_error)

        logger.info("GalaxyHandControl initialized (refresh=%.0f Hz)", self._refresh_hz)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def start(self):
        """Start rendering and the detector load, then run until quit."""
        self._begin_startup()
        self._run()

    def _begin_startup(self):
        self._bus.emit(Events.SYSTEM_STARTED, version=__version__)
        self._running = True
        self._state.status = TrackingStatus.LOADING

        self._loader = threading.Thread(target=self._load_detector, name="detector-load", daemon=True)
        self._loader.start()

        # Queued ahead of rendering so a finished load is handled before the frame is drawn
        self._startup_task.start()
        self._render_task.start()

    def _load_detector(self):
        """Worker thread: model download and landmarker creation."""
        try:
            self._detector.initialize()
        except DetectorUnavailable as e:
            self._load_error = e

    def _check_startup(self, now: float):
        """Startup task: once the detector load is over, open the camera and start polling."""
        if self._loader is None or self._loader.is_alive():
            return
        self._startup_task.stop()

        if self._finish_detector_load() and self._start_camera():
            self._start_polling()

    def _finish_detector_load(self) -> bool:
        error = self._load_error
        if error is None and not self._detector.is_ready:
            error = DetectorUnavailable("Hand landmarker did not initialize")

        if error is not None:
            logger.error("%s", error)
            self._state.status = TrackingStatus.DETECTOR_ERROR
            self._bus.emit(Events.DETECTOR_FAILED, error=error)
            return False

        self._state.status = TrackingStatus.READY
        self._bus.emit(Events.DETECTOR_READY)
        return True

    def _start_camera(self) -> bool:
        if not self._source.open():
            logger.error("Failed to open camera. Check connection and permissions.")
            self._state.status = TrackingStatus.CAMERA_ERROR
            self._bus.emit(Events.CAMERA_ERROR, device_id=self._source.config.device_id)
            return False
        self._source.start()
        return True

    def _start_polling(self):
        # Poll before render in every frame
        self._render_task.stop()
        self._synchronizer.start(self._scheduler)
        self._render_task.start()

        self._state.status = TrackingStatus.ACTIVE
        self._bus.emit(Events.POLLING_STARTED)

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def _run(self):
        """Drive the refresh scheduler at the target rate."""
        period_s = 1.0 / self._refresh_hz if self._refresh_hz > 0 else 0.0

        while self._running:
            frame_start = time.perf_counter()
            self._scheduler.run_frame(frame_start * 1000.0)

            # waitKey both paces the loop and pumps the window's events
            remaining_ms = (period_s - (time.perf_counter() - frame_start)) * 1000.0
            key = cv2.waitKey(max(1, int(remaining_ms))) & 0xFF
            self._handle_key(key)

        self._shutdown()

    def _render_frame(self, now: float):
        """Render tick: advance the camera, draw the scene and the HUD."""
        with self._perf.measure("render"):
            pose = self._pipeline.render_tick(now)
            image = self._renderer.render(pose, time.perf_counter() - self._start_time)

        self._state.fps = self._perf.fps
        self._state.detection_ms = self._perf.get_stage_latency("detection")
        self._panel.render(image, self._state.to_dashboard_dict(), self._source.latest_frame)

        with self._perf.measure("present"):
            cv2.imshow(self._window_name, image)
        self._perf.tick()

    def _handle_key(self, key: int):
        if key in (ord("q"), _KEY_ESC):
            self._running = False
        elif key == ord("p"):
            self._print_report()

    def _print_report(self):
        extra = dict(self._synchronizer.stats)
        extra["hand_acquisitions"] = self._tracking_logger.acquisitions
        extra["hand_losses"] = self._tracking_logger.losses
        self._perf.print_report(extra)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def _shutdown(self):
        """Clean shutdown of all modules."""
        logger.info("Shutting down...")
        self._running = False
        self._startup_task.stop()
        if self._synchronizer.is_running:
            self._synchronizer.stop()
            self._bus.emit(Events.POLLING_STOPPED)
        self._render_task.stop()
        self._source.stop()
        if self._loader is not None and self._loader.is_alive():
            logger.info("Hand model still loading, leaving it to exit with the process")
        else:
            self._detector.close()
        cv2.destroyAllWindows()

        self._print_report()
        self._bus.emit(Events.SYSTEM_SHUTDOWN)
        logger.info("Shutdown complete.")

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="galaxy-hand-control",
        description="Galaxy Hand Control - steer a galaxy with your hand"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to config.yaml (default: ./config/config.yaml)"
    )
    parser.add_argument(
        "--camera", type=int, default=None,
        help="Camera device ID"
    )
    parser.add_argument(
        "--refresh-hz", type=float, default=None,
        help="Display refresh rate (smoothing is tuned for 60)"
    )
    parser.add_argument(
        "--no-preview", action="store_true",
        help="Hide the webcam preview"
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        help="Override logging level (DEBUG, INFO, ...)"
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    config = Config()
    config.load(config_path=args.config)

    overrides = {}
    if args.camera is not None:
        overrides.setdefault("camera", {})["device_id"] = args.camera
    if args.refresh_hz is not None:
        overrides.setdefault("display", {})["refresh_hz"] = args.refresh_hz
    if args.no_preview:
        overrides.setdefault("display", {})["show_preview"] = False
    if args.log_level:
        overrides.setdefault("logging", {})["level"] = args.log_level
    if overrides:
        config.update(overrides)

    log_cfg = config.logging
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
    )

    logger.info("=" * 60)
    logger.info("  GALAXY HAND CONTROL")
    logger.info("  Version: %s", config.get("system.version", __version__))
    logger.info("  Config: %s", config.path)
    logger.info("=" * 60)

    refresh_hz = config_value(config.display, "display", "refresh_hz", 60.0)
    if refresh_hz != 60:
        logger.warning("Refresh rate %.0f Hz differs from the 60 Hz the smoothing was tuned for; "
                       "camera response will feel different", refresh_hz)

    app = GalaxyHandControl(config)

    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    app.start()
    return 0
