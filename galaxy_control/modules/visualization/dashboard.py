"""
Status HUD drawn over the rendered galaxy: title, tracking indicator,
status text, control hints and a mirrored webcam preview.
"""

import logging
from typing import Optional

import cv2
import numpy as np

from galaxy_control.modules.utils.config import config_value

logger = logging.getLogger(__name__)


class StatusPanel:
    """Renders the status overlay for the gesture-controlled galaxy."""

    def __init__(self, config: dict):
        self._show_preview = config_value(config, "display", "show_preview", True)
        self._show_fps = config_value(config, "display", "show_fps", True)
        self._show_camera = config_value(config, "display", "show_camera_readout", False)
        self._preview_width = config_value(config, "display", "preview_width", 192)

        colors = config.get("colors", {})
        self._color_text = tuple(colors.get("text", [230, 230, 230]))
        self._color_muted = tuple(colors.get("muted", [160, 160, 160]))
        self._color_title = tuple(colors.get("title", [250, 160, 120]))
        self._color_tracking = tuple(colors.get("tracking", [94, 197, 34]))
        self._color_no_hand = tuple(colors.get("no_hand", [68, 68, 239]))
        self._color_error = tuple(colors.get("error", [0, 0, 255]))

        panel_cfg = config.get("panel", {})
        self._panel_opacity = panel_cfg.get("opacity", 0.8)
        self._panel_width = panel_cfg.get("width", 300)

        self._hints = [
            ("Move hand", "rotate"),
            ("Pinch", "zoom in"),
            ("Open hand", "zoom out"),
        ]

    def render(self, frame: np.ndarray, state: dict, preview: Optional[np.ndarray] = None) -> np.ndarray:
        """Render the HUD onto a BGR frame in place.

        Args:
            frame: rendered galaxy image
            state: PipelineState.to_dashboard_dict() output
            preview: latest webcam frame (unmirrored BGR) or None

        Returns:
            The same frame, with the overlay drawn
        """
        h, w = frame.shape[:2]

        self._draw_panel(frame, state)

        if self._show_preview and preview is not None:
            self._draw_preview(frame, w, h, preview, state)

        if self._show_fps:
            cv2.putText(
                frame, f"FPS: {state.get('fps', 0.0):.0f}",
                (w - 110, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.6, self._color_muted, 1,
            )

        if self._show_camera:
            self._draw_camera_readout(frame, h, state)

        return frame

    def _draw_panel(self, frame, state):
        """Top-left panel: title, presence dot, status and hints."""
        x0, y0 = 15, 15
        panel_h = 60 + 28 + 22 * len(self._hints) + 10
        x1, y1 = x0 + self._panel_width, y0 + panel_h

        overlay = frame.copy()
        cv2.rectangle(overlay, (x0, y0), (x1, y1), (30, 22, 18), -1)
        cv2.addWeighted(overlay, self._panel_opacity, frame, 1 - self._panel_opacity, 0, frame)
        cv2.rectangle(frame, (x0, y0), (x1, y1), (80, 80, 80), 1)

        cv2.putText(
            frame, "Galaxy Hand Control",
            (x0 + 12, y0 + 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, self._color_title, 2,
        )

        # Presence dot
        dot_color = self._color_tracking if state.get("hand_detected") else self._color_no_hand
        cv2.circle(frame, (x0 + 20, y0 + 55), 6, dot_color, -1)

        status_color = self._color_error if state.get("status_is_error") else self._color_text
        cv2.putText(
            frame, state.get("status", ""),
            (x0 + 36, y0 + 60), cv2.FONT_HERSHEY_SIMPLEX, 0.5, status_color, 1,
        )

        y = y0 + 60 + 28
        for gesture, action in self._hints:
            cv2.putText(
                frame, f"{gesture}: {action}",
                (x0 + 14, y), cv2.FONT_HERSHEY_SIMPLEX, 0.45, self._color_muted, 1,
            )
            y += 22

    def _draw_preview(self, frame, w, h, preview, state):
        """Bottom-right mirrored webcam thumbnail."""
        ph, pw = preview.shape[:2]
        if pw == 0 or ph == 0:
            return
        thumb_w = min(self._preview_width, w // 2)
        thumb_h = max(1, int(ph * thumb_w / pw))
        if thumb_h >= h // 2:
            return

        thumb = cv2.resize(cv2.flip(preview, 1), (thumb_w, thumb_h))
        if thumb.ndim == 2:
            thumb = cv2.cvtColor(thumb, cv2.COLOR_GRAY2BGR)

        x0 = w - thumb_w - 15
        y0 = h - thumb_h - 15
        roi = frame[y0:y0 + thumb_h, x0:x0 + thumb_w]
        cv2.addWeighted(thumb, 0.8, roi, 0.2, 0, roi)

        if state.get("active") and not state.get("hand_detected"):
            dim = roi.copy()
            dim[:] = 0
            cv2.addWeighted(dim, 0.5, roi, 0.5, 0, roi)
            text = "Show hand to start"
            size = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.45, 1)[0]
            cv2.putText(
                frame, text,
                (x0 + (thumb_w - size[0]) // 2, y0 + (thumb_h + size[1]) // 2),
                cv2.FONT_HERSHEY_SIMPLEX, 0.45, self._color_text, 1,
            )

        cv2.rectangle(frame, (x0 - 1, y0 - 1), (x0 + thumb_w, y0 + thumb_h), (80, 80, 80), 2)

    def _draw_camera_readout(self, frame, h, state):
        """Bottom-left numeric camera state, for tuning."""
        pinch = state.get("pinch_distance")
        lines = [
            f"azimuth {state.get('azimuth', 0.0):+.2f}",
            f"polar   {state.get('polar_angle', 0.0):.2f}",
            f"radius  {state.get('radius', 0.0):.2f}",
            f"pinch   {pinch:.3f}" if pinch is not None else "pinch   -",
        ]
        y = h - 20 - 20 * (len(lines) - 1)
        for line in lines:
            cv2.putText(frame, line, (15, y), cv2.FONT_HERSHEY_SIMPLEX, 0.45, self._color_muted, 1)
            y += 20
