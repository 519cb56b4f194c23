#!/usr/bin/env python3
"""
Capture Session Module
Periodic camera capture loop shared by enrollment and recognition. One frame
is pulled per tick; a tick that arrives while the previous frame is still
being processed is dropped.

Created: 2025
"""

from __future__ import annotations

import os
import sys
import threading
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional, Protocol

from .detectors.types import FaceDetection, FaceDetector
from .enrollment import AdvanceResult, EnrollmentStateMachine
from .exceptions import ModelUnavailableError
from .face_features import EmbeddingExtractor
from .face_quality import ImageQualityAssessor, QualityResult
from .recognition import FaceRecognizer, MatchResult

if TYPE_CHECKING:
    from .config_manager import ConfigManager

DEFAULT_INTERVAL_MS = 500


class FrameSource(Protocol):
    """Camera delivering one still image per call"""

    def open(self) -> None:
        ...

    def capture(self) -> str:
        """Take a picture and return the path of a temporary image file"""
        ...

    def close(self) -> None:
        ...


class PeriodicTimer(Protocol):
    def start(self, interval: float, callback: Callable[[], None]) -> None:
        ...

    def cancel(self) -> None:
        ...


class ThreadingTimer:
    """Calls back every interval seconds on a daemon thread until cancelled"""

    def __init__(self) -> None:
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, interval: float, callback: Callable[[], None]) -> None:
        self.cancel()
        stop = threading.Event()
        self._stop = stop

        def run() -> None:
            while not stop.wait(interval):
                callback()

        self._thread = threading.Thread(target=run, name="capture-timer", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()
        self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and not self._stop.is_set()


@dataclass
class SessionState:
    """Everything a screen needs to render the session"""

    is_processing: bool = False
    in_background: bool = False
    stopped: bool = False
    camera_ready: bool = False
    error_message: Optional[str] = None
    message: Optional[str] = None
    detected_faces: List[FaceDetection] = field(default_factory=list)
    is_head_position_correct: bool = False
    feedback: Optional[str] = None
    quality: Optional[QualityResult] = None
    matches: List[MatchResult] = field(default_factory=list)

    def reset_transient(self) -> None:
        self.detected_faces = []
        self.is_head_position_correct = False
        self.feedback = None
        self.quality = None
        self.matches = []


class CaptureSession:
    """Periodic capture -> detect -> process loop over one camera"""

    def __init__(
        self,
        camera: FrameSource,
        detector: FaceDetector,
        extractor: Optional[EmbeddingExtractor] = None,
        timer: Optional[PeriodicTimer] = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        executor: Optional[Executor] = None,
        state: Optional[SessionState] = None,
    ):
        """
        Initialize a capture session
        Args:
            camera: Frame source, opened on start and released on stop
            detector: Face detector run on every captured frame
            extractor: Embedding extractor, its model is preloaded on start
            timer: Periodic timer, a daemon thread timer by default
            interval_ms: Capture period in milliseconds
            executor: Runs each capture cycle; inline on the timer thread if None
            state: Session state object, a fresh one if None
        """
        self.camera = camera
        self.detector = detector
        self.extractor = extractor
        self.timer: PeriodicTimer = timer or ThreadingTimer()
        self.interval = interval_ms / 1000.0
        self.executor = executor
        self.state = state or SessionState()
        self._guard = threading.Lock()
        self._last_error: Optional[str] = None
        # Bumped on every start, stop and background; a cycle from an older
        # generation must not touch the state
        self._generation = 0
        self._cycle_generation = 0

    @classmethod
    def from_config(cls, config: "ConfigManager", *args, **kwargs) -> "CaptureSession":
        """Build a session with the capture period from session.capture_interval_ms"""
        kwargs.setdefault("interval_ms", int(config.get("session.capture_interval_ms", DEFAULT_INTERVAL_MS)))
        return cls(*args, **kwargs)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_cancelled(self) -> bool:
        return self.state.stopped or self.state.in_background

    @property
    def is_stale(self) -> bool:
        """True when the running cycle was overtaken by a stop, background or restart"""
        return self.is_cancelled or self._cycle_generation != self._generation

    def start(self) -> bool:
        """
        Open the camera and start the periodic capture
        Returns:
            True if capturing started, False on error (see state.error_message)
        """
        if self.state.in_background:
            return False

        self._generation += 1
        self.timer.cancel()
        self.state.stopped = False
        self.state.reset_transient()

        try:
            self.camera.open()
        except Exception as e:
            self.state.camera_ready = False
            self.state.error_message = f"Error initializing camera: {e}"
            print(f"⚠️  {self.state.error_message}", file=sys.stderr)
            return False

        self.state.camera_ready = True
        self.state.error_message = None

        if self.extractor is not None:
            try:
                self.extractor.load_model()
            except ModelUnavailableError as e:
                # Extraction retries the load on every frame
                self.state.error_message = str(e)

        self.timer.start(self.interval, self.tick)
        return True

    def retry(self) -> bool:
        return self.start()

    def stop(self) -> None:
        """Stop capturing and release the camera"""
        self._generation += 1
        self.state.stopped = True
        self._release()

    def enter_background(self) -> None:
        self._generation += 1
        self.state.in_background = True
        self._release()

    def enter_foreground(self) -> bool:
        """Re-acquire the camera from scratch unless the session was stopped"""
        self.state.in_background = False
        if self.state.stopped:
            return False
        return self.start()

    def _release(self) -> None:
        self.timer.cancel()
        self.state.camera_ready = False
        self.state.reset_transient()
        try:
            self.camera.close()
        except Exception as e:
            print(f"⚠️  Error releasing camera: {e}", file=sys.stderr)

    # ------------------------------------------------------------------
    # Capture cycle
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """
        Run one capture cycle unless one is already in flight
        Returns:
            True if a cycle was started
        """
        if self.is_cancelled or not self.state.camera_ready:
            return False
        if not self._guard.acquire(blocking=False):
            return False

        self.state.is_processing = True
        if self.executor is None:
            self._run_cycle()
        else:
            try:
                self.executor.submit(self._run_cycle)
            except RuntimeError:
                self._finish_cycle()
                return False
        return True

    def _run_cycle(self) -> None:
        path: Optional[str] = None
        self._cycle_generation = self._generation
        try:
            if not self.should_capture():
                return
            path = self.camera.capture()
            self.process_frame(path)
            self._last_error = None
        except Exception as e:
            if not self.is_stale:
                self.state.reset_transient()
            self._report_error(e)
        finally:
            if path:
                self._delete_frame(path)
            self._finish_cycle()

    def _finish_cycle(self) -> None:
        self.state.is_processing = False
        self._guard.release()

    @staticmethod
    def _delete_frame(path: str) -> None:
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError:
            pass

    def _report_error(self, error: Exception) -> None:
        message = f"{type(error).__name__}: {error}"
        if message != self._last_error:
            print(f"⚠️  Frame processing failed: {message}", file=sys.stderr)
            self._last_error = message

    def should_capture(self) -> bool:
        return True

    def process_frame(self, path: str) -> None:
        raise NotImplementedError


class EnrollmentSession(CaptureSession):
    """Capture loop feeding an EnrollmentStateMachine"""

    def __init__(
        self,
        machine: EnrollmentStateMachine,
        camera: FrameSource,
        detector: FaceDetector,
        assessor: ImageQualityAssessor,
        extractor: EmbeddingExtractor,
        **kwargs,
    ):
        super().__init__(camera, detector, extractor=extractor, **kwargs)
        self.machine = machine
        self.assessor = assessor

    def should_capture(self) -> bool:
        return self.machine.can_capture()

    def process_frame(self, path: str) -> None:
        faces = self.detector.detect(path)
        if self.is_stale:
            return

        if not faces:
            self.state.reset_transient()
            return

        face = faces[0]
        quality = self.assessor.assess(path)
        decision = self.machine.evaluate_frame(face, quality)

        self.state.detected_faces = list(faces)
        self.state.quality = quality
        self.state.is_head_position_correct = bool(decision.pose and decision.pose.matches)
        self.state.feedback = decision.feedback

        if not decision.should_capture:
            return

        embedding = self.extractor.extract(path, face.bbox)
        if self.is_stale:
            return
        self._apply(self.machine.record_embedding(embedding))

    def skip(self) -> AdvanceResult:
        return self._apply(self.machine.skip())

    def advance(self) -> AdvanceResult:
        return self._apply(self.machine.advance())

    def cancel(self) -> None:
        """Abandon the enrollment without saving"""
        self.machine.cancel()
        self.stop()

    def _apply(self, result: AdvanceResult) -> AdvanceResult:
        if result.message:
            self.state.message = result.message

        finalize_result = result.finalize_result
        if finalize_result is not None:
            if finalize_result.success:
                print(finalize_result.message)
                self.stop()
            else:
                print(f"⚠️  {finalize_result.message}", file=sys.stderr)
        elif result.moved:
            self.state.reset_transient()
        return result


class RecognitionSession(CaptureSession):
    """Capture loop identifying every detected face"""

    def __init__(
        self,
        recognizer: FaceRecognizer,
        camera: FrameSource,
        detector: FaceDetector,
        extractor: EmbeddingExtractor,
        assessor: Optional[ImageQualityAssessor] = None,
        **kwargs,
    ):
        super().__init__(camera, detector, extractor=extractor, **kwargs)
        self.recognizer = recognizer
        self.assessor = assessor

    def process_frame(self, path: str) -> None:
        faces = self.detector.detect(path)
        if self.is_stale:
            return

        quality = self.assessor.assess(path) if self.assessor is not None and faces else None
        matches: List[MatchResult] = []
        if faces and (quality is None or quality.is_good):
            for face in faces:
                embedding = self.extractor.extract(path, face.bbox)
                matches.append(self.recognizer.recognize(embedding))

        if self.is_stale:
            return
        self.state.detected_faces = list(faces)
        self.state.quality = quality
        self.state.matches = matches
