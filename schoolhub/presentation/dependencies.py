from fastapi import Request

from schoolhub.application.issue_code import OtpPolicy
from schoolhub.domain.ports.delivery_channel import DeliveryChannelPort
from schoolhub.domain.ports.gate_passes import GatePassesPort
from schoolhub.domain.ports.image_storage import ImageStoragePort
from schoolhub.domain.ports.unit_of_work import UnitOfWorkPort
from schoolhub.domain.ports.verification_store import VerificationStorePort
from schoolhub.infrastructure.db.pool import get_pool
from schoolhub.infrastructure.db.uow import PgUnitOfWork
from schoolhub.presentation.gate_registry import GateRegistry
from schoolhub.settings import Settings


def get_uow() -> UnitOfWorkPort:
    return PgUnitOfWork(get_pool())


def get_otp_policy(request: Request) -> OtpPolicy:
    settings: Settings = request.app.state.settings
    return OtpPolicy(
        code_length=settings.otp_code_length,
        ttl_seconds=settings.otp_ttl_seconds,
        max_attempts=settings.otp_max_attempts,
    )


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# The following are built once in schoolhub.main and shared by all requests.


def get_verification_store(request: Request) -> VerificationStorePort:
    return request.app.state.verification_store


def get_gate_passes(request: Request) -> GatePassesPort:
    return request.app.state.gate_passes


def get_gate_registry(request: Request) -> GateRegistry:
    return request.app.state.gate_registry


def get_delivery_channel(request: Request) -> DeliveryChannelPort:
    # set in lifespan(), once the shared HTTP client exists
    return request.app.state.delivery_channel


def get_image_storage(request: Request) -> ImageStoragePort:
    return request.app.state.image_storage
