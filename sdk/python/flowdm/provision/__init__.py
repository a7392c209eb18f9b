from .constrained import ConstrainedProvisioner, ObserveConfirmation, PollConfirmation, access_complete
from .context import ProvisioningContext
from .gateway import GatewayPhase, GatewayProvisioner, VerificationState
from .licensee import compute_licensee_hash, perform_licensee_verification

__all__ = [
    "ConstrainedProvisioner",
    "GatewayPhase",
    "GatewayProvisioner",
    "ObserveConfirmation",
    "PollConfirmation",
    "ProvisioningContext",
    "VerificationState",
    "access_complete",
    "compute_licensee_hash",
    "perform_licensee_verification",
]
