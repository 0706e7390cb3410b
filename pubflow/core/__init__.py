# コアモジュール
# ロケータ解決、フレーム降下、要素操作、モーダル処理、セッション、Runner、成果物・レポートを提供

from .artifacts import ArtifactsManager, mask_secrets
from .errors import (
    ConfigurationAbsentError,
    FlowError,
    FrameUnavailableError,
    ModalNotPresentError,
    NotFoundError,
)
from .frames import FrameNavigator, FrameStep
from .interactor import InteractionOutcome, Interactor
from .locators import (
    Candidate,
    ControlShape,
    CssCandidate,
    LabelCandidate,
    RoleCandidate,
)
from .modal import ModalGatekeeper, ModalResult, ModalSpec, ModalState
from .reporting import Reporter
from .runner import FlowResult, FlowRunner, StepResult
from .selector import LocatorResolver, ResolvedElement
from .session import FlowSession, SessionOptions
from .waits import ProbeResult

__all__ = [
    "ArtifactsManager",
    "Candidate",
    "ConfigurationAbsentError",
    "ControlShape",
    "CssCandidate",
    "FlowError",
    "FlowResult",
    "FlowRunner",
    "FlowSession",
    "FrameNavigator",
    "FrameStep",
    "FrameUnavailableError",
    "InteractionOutcome",
    "Interactor",
    "LabelCandidate",
    "LocatorResolver",
    "ModalGatekeeper",
    "ModalNotPresentError",
    "ModalResult",
    "ModalSpec",
    "ModalState",
    "NotFoundError",
    "ProbeResult",
    "ResolvedElement",
    "Reporter",
    "RoleCandidate",
    "SessionOptions",
    "StepResult",
    "mask_secrets",
]
