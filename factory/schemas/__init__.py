from factory.schemas.batch import BatchCreate, BatchResponse, BatchListResponse, QualitySummaryResponse
from factory.schemas.production_log import ProductionLogCreate, ProductionLogResponse
from factory.schemas.quality import DefectLine, InspectionCreate, DefectRecordResponse, InspectionResponse
from factory.schemas.rework import ReworkCreate, ReworkResponse, ReworkAvailability
from factory.schemas.box import BoxResponse, BoxListResponse, BoxStatusUpdate
from factory.schemas.approval import RejectRequest, ProductionApprovalResponse, ReworkApprovalResponse
