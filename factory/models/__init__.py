# Models module - importing registers every table with Base.metadata
from factory.models.user import User, SectionAssignment, UserRoleType, AccountStatus, VerificationStatus
from factory.models.machine import Machine, MachineStatus
from factory.models.batch import Batch, BatchStatus, ProductionStage
from factory.models.production_log import ProductionLog, ApprovalStatus
from factory.models.quality import DefectRecord, DefectSeverity
from factory.models.rework import ReworkRecord
from factory.models.box import Box, BoxStatus

__all__ = [
    "User",
    "SectionAssignment",
    "UserRoleType",
    "AccountStatus",
    "VerificationStatus",
    "Machine",
    "MachineStatus",
    "Batch",
    "BatchStatus",
    "ProductionStage",
    "ProductionLog",
    "ApprovalStatus",
    "DefectRecord",
    "DefectSeverity",
    "ReworkRecord",
    "Box",
    "BoxStatus",
]
