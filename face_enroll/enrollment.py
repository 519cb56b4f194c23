#!/usr/bin/env python3
"""
Multi-pose Face Enrollment Module
Walks a person through five head orientations (center, up, down, left,
right), keeps the embeddings of frames that pass the pose window and the
quality gate, and saves the identity once enough frames were captured

Created: 2025
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from .detectors.types import FaceDetection
from .exceptions import FaceStoreError
from .face_database import Embedding, FaceIdentity, FaceStore
from .face_quality import QualityResult, feedback_message

if TYPE_CHECKING:
    from .config_manager import ConfigManager


class FacePosition(enum.IntEnum):
    """Capture positions, in the order they are visited"""

    CENTER = 0
    UP = 1
    DOWN = 2
    LEFT = 3
    RIGHT = 4


POSITION_ORDER: Tuple[FacePosition, ...] = tuple(FacePosition)

POSITION_LABELS: Dict[FacePosition, str] = {
    FacePosition.CENTER: "Look straight ahead",
    FacePosition.UP: "Look up",
    FacePosition.DOWN: "Look down",
    FacePosition.LEFT: "Look left",
    FacePosition.RIGHT: "Look right",
}

POSITION_INSTRUCTIONS: Dict[FacePosition, str] = {
    FacePosition.CENTER: "Place your face in the middle of the circle",
    FacePosition.UP: "Tilt your head up",
    FacePosition.DOWN: "Tilt your head down",
    FacePosition.LEFT: "Turn your head to the left",
    FacePosition.RIGHT: "Turn your head to the right",
}

# Angular windows in degrees, all bounds exclusive
CENTER_LIMIT = 15.0
PITCH_WINDOW = (10.0, 50.0)
YAW_WINDOW = (15.0, 60.0)


@dataclass(frozen=True)
class PoseCheck:
    matches: bool
    feedback: Optional[str] = None


def check_head_pose(position: FacePosition, pitch: float, yaw: float) -> PoseCheck:
    """
    Check head angles against the window of a capture position
    Args:
        position: Position being captured
        pitch: Up/down angle in degrees, negative is up
        yaw: Left/right angle in degrees, negative is left
    Returns:
        PoseCheck with a hint when the pose does not match
    """
    low, high = PITCH_WINDOW
    if position is FacePosition.CENTER:
        if abs(pitch) < CENTER_LIMIT and abs(yaw) < CENTER_LIMIT:
            return PoseCheck(True)
        return PoseCheck(False, "Look straight ahead")

    if position is FacePosition.UP:
        if -high < pitch < -low:
            return PoseCheck(True)
        if pitch >= -low:
            return PoseCheck(False, "Tilt your head further up")
        return PoseCheck(False, "Too far up, lower your head slightly")

    if position is FacePosition.DOWN:
        if low < pitch < high:
            return PoseCheck(True)
        if pitch <= low:
            return PoseCheck(False, "Tilt your head further down")
        return PoseCheck(False, "Too far down, raise your head slightly")

    low, high = YAW_WINDOW
    if position is FacePosition.LEFT:
        if -high < yaw < -low:
            return PoseCheck(True)
        if yaw >= -low:
            return PoseCheck(False, "Turn your head further left")
        return PoseCheck(False, "Too far left, turn slightly right")

    if low < yaw < high:
        return PoseCheck(True)
    if yaw <= low:
        return PoseCheck(False, "Turn your head further right")
    return PoseCheck(False, "Too far right, turn slightly left")


class FrameStatus(enum.Enum):
    CAPTURE = "capture"
    INACTIVE = "inactive"
    POSITION_FULL = "position_full"
    LOW_QUALITY = "low_quality"
    WRONG_POSE = "wrong_pose"


@dataclass(frozen=True)
class FrameDecision:
    """Whether a frame should be embedded, with feedback for the user"""

    status: FrameStatus
    pose: Optional[PoseCheck] = None
    quality: Optional[QualityResult] = None
    feedback: Optional[str] = None

    @property
    def should_capture(self) -> bool:
        return self.status is FrameStatus.CAPTURE


@dataclass(frozen=True)
class FinalizeResult:
    success: bool
    total_frames: int
    required_frames: int
    message: str
    identity: Optional[FaceIdentity] = None

    @property
    def shortfall(self) -> int:
        return max(0, self.required_frames - self.total_frames)


@dataclass(frozen=True)
class AdvanceResult:
    moved: bool
    position: FacePosition
    message: Optional[str] = None
    finalize_result: Optional[FinalizeResult] = None


@dataclass
class EnrollmentState:
    """Mutable enrollment progress, one embedding bucket per position"""

    name: str
    current_position: FacePosition = FacePosition.CENTER
    captured: List[List[Embedding]] = field(default_factory=lambda: [[] for _ in POSITION_ORDER])
    finalized: bool = False
    abandoned: bool = False

    def frames_at(self, position: FacePosition) -> int:
        return len(self.captured[position])

    @property
    def total_frames(self) -> int:
        return sum(len(bucket) for bucket in self.captured)

    def all_embeddings(self) -> List[Embedding]:
        embeddings: List[Embedding] = []
        for position in POSITION_ORDER:
            embeddings.extend(self.captured[position])
        return embeddings


class EnrollmentStateMachine:
    """Five-position enrollment driving a FaceStore save"""

    def __init__(
        self,
        name: str,
        store: FaceStore,
        required_frames_per_position: int = 3,
        min_frames_per_position: int = 2,
        front_camera: bool = True,
        auto_advance: bool = True,
        state: Optional[EnrollmentState] = None,
    ):
        """
        Initialize an enrollment
        Args:
            name: Name the identity is saved under
            store: Face store receiving the finished identity
            required_frames_per_position: Frames that complete a position
            min_frames_per_position: Frames needed before a position may be skipped
            front_camera: Mirror pitch and yaw, the preview of a front sensor is mirrored
            auto_advance: Move on as soon as a position is complete
            state: Existing progress to resume
        """
        if min_frames_per_position <= 0 or required_frames_per_position < min_frames_per_position:
            raise ValueError("Need 0 < min_frames_per_position <= required_frames_per_position")

        self.store = store
        self.required_frames_per_position = required_frames_per_position
        self.min_frames_per_position = min_frames_per_position
        self.front_camera = front_camera
        self.auto_advance = auto_advance
        self.state = state or EnrollmentState(name=name)

    @classmethod
    def from_config(cls, name: str, store: FaceStore, config: "ConfigManager") -> "EnrollmentStateMachine":
        return cls(
            name,
            store,
            required_frames_per_position=int(config.get("enrollment.required_frames_per_position", 3)),
            min_frames_per_position=int(config.get("enrollment.min_frames_per_position", 2)),
            front_camera=bool(config.get("enrollment.front_camera", True)),
            auto_advance=bool(config.get("enrollment.auto_advance", True)),
        )

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.state.name

    @property
    def current_position(self) -> FacePosition:
        return self.state.current_position

    @property
    def is_active(self) -> bool:
        return not (self.state.finalized or self.state.abandoned)

    @property
    def minimum_total_frames(self) -> int:
        return len(POSITION_ORDER) * self.min_frames_per_position

    def position_number(self, position: Optional[FacePosition] = None) -> int:
        """1-based number of a position in the capture order"""
        return POSITION_ORDER.index(position if position is not None else self.current_position) + 1

    def position_progress(self) -> float:
        frames = self.state.frames_at(self.current_position)
        return min(1.0, frames / self.required_frames_per_position)

    def overall_progress(self) -> float:
        total = len(POSITION_ORDER) * self.required_frames_per_position
        captured = sum(
            min(self.state.frames_at(p), self.required_frames_per_position) for p in POSITION_ORDER
        )
        return captured / total

    def is_position_complete(self) -> bool:
        return self.state.frames_at(self.current_position) >= self.required_frames_per_position

    def can_skip(self) -> bool:
        return self.state.frames_at(self.current_position) >= self.min_frames_per_position

    def can_capture(self) -> bool:
        return self.is_active and not self.is_position_complete()

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------

    def check_head_pose(self, face: FaceDetection) -> PoseCheck:
        pitch = face.head_euler_x
        yaw = face.head_euler_y
        if self.front_camera:
            pitch, yaw = -pitch, -yaw
        return check_head_pose(self.current_position, pitch, yaw)

    def evaluate_frame(self, face: FaceDetection, quality: QualityResult) -> FrameDecision:
        """
        Decide whether a detected face should be embedded for the current position
        Args:
            face: First face found in the frame
            quality: Quality gate result for the same frame
        Returns:
            FrameDecision, should_capture only if pose and quality both pass
        """
        if not self.is_active:
            return FrameDecision(FrameStatus.INACTIVE)
        if self.is_position_complete():
            return FrameDecision(FrameStatus.POSITION_FULL)

        pose = self.check_head_pose(face)
        if not quality.is_good:
            return FrameDecision(FrameStatus.LOW_QUALITY, pose, quality, feedback_message(quality))
        if not pose.matches:
            return FrameDecision(FrameStatus.WRONG_POSE, pose, quality, pose.feedback)
        return FrameDecision(FrameStatus.CAPTURE, pose, quality, feedback_message(quality))

    def record_embedding(self, embedding: Sequence[float]) -> AdvanceResult:
        """
        Store the embedding of an accepted frame for the current position
        Returns:
            AdvanceResult, moved when the position completed and auto_advance is on
        """
        position = self.current_position
        if not self.can_capture():
            return AdvanceResult(False, position, "Position already complete")

        self.state.captured[position].append([float(x) for x in embedding])

        if self.auto_advance and self.is_position_complete():
            return self._move_to_next_position()
        return AdvanceResult(False, position)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def advance(self) -> AdvanceResult:
        """Move on from a complete position"""
        if not self.is_active:
            return AdvanceResult(False, self.current_position, "Enrollment is not active")
        if not self.is_position_complete():
            return AdvanceResult(
                False,
                self.current_position,
                f"{self.required_frames_per_position} frames are needed to continue",
            )
        return self._move_to_next_position()

    def skip(self) -> AdvanceResult:
        """Move on early once the minimum frame count is reached"""
        if not self.is_active:
            return AdvanceResult(False, self.current_position, "Enrollment is not active")
        if not self.can_skip():
            return AdvanceResult(
                False,
                self.current_position,
                f"At least {self.min_frames_per_position} frames are needed to skip",
            )
        return self._move_to_next_position()

    def _move_to_next_position(self) -> AdvanceResult:
        index = POSITION_ORDER.index(self.current_position)
        if index < len(POSITION_ORDER) - 1:
            self.state.current_position = POSITION_ORDER[index + 1]
            return AdvanceResult(True, self.state.current_position)

        result = self.finalize()
        return AdvanceResult(result.success, self.current_position, result.message, result)

    def cancel(self) -> None:
        """Abandon the enrollment, nothing is saved"""
        if self.is_active:
            self.state.abandoned = True

    def finalize(self) -> FinalizeResult:
        """
        Save every captured embedding under the enrollment name
        Replaces any identity with the same name. Does nothing to the store if
        fewer than minimum_total_frames frames were captured.
        """
        embeddings = self.state.all_embeddings()
        required = self.minimum_total_frames

        if not self.is_active:
            return FinalizeResult(False, len(embeddings), required, "Enrollment is not active")

        if len(embeddings) < required:
            return FinalizeResult(
                False,
                len(embeddings),
                required,
                f"Need at least {required} frames. Only captured {len(embeddings)}",
            )

        try:
            identity = self.store.save_face(self.name, embeddings)
        except FaceStoreError as e:
            return FinalizeResult(False, len(embeddings), required, f"Failed to register face: {e}")

        self.state.finalized = True
        return FinalizeResult(
            True,
            len(embeddings),
            required,
            f"{self.name} registered successfully with {len(embeddings)} frames!",
            identity,
        )
