"""
Pose estimation utilities.

This package defines the landmark model, a model-agnostic PoseProvider
interface with a MediaPipe adapter, and the PoseDetector lifecycle that owns
the single shared model instance.
"""
