"""
Galaxy Hand Control
===================

Steer the camera around a procedurally generated galaxy with hand gestures
captured from a webcam.

Packages:
    - core: shared types, errors, event bus, refresh scheduler, pipeline
    - modules.capture: webcam acquisition and frame synchronization
    - modules.detection: MediaPipe hand landmark detection
    - modules.recognition: gesture extraction from landmarks
    - modules.control: smoothed orbital camera control
    - modules.scene: galaxy and starfield geometry
    - modules.visualization: point-cloud renderer and status HUD
    - modules.utils: configuration, logging, performance monitoring
"""

__version__ = "1.0.0"
__author__ = "HCI Team"
