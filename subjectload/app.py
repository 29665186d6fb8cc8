import logging
from dataclasses import asdict
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from subjectload import config
from subjectload.core.exceptions import NotFoundError, ValidationError
from subjectload.core.policy import GradingPolicy
from subjectload.core.repositories import JsonEnrollmentRepository
from subjectload.core.service import SubjectLoadService

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("subjectload").setLevel(config.LOG_LEVEL)


configure_logging()


_service: Optional[SubjectLoadService] = None


def get_service() -> SubjectLoadService:
    global _service
    if _service is None:
        repo = JsonEnrollmentRepository.from_directory(config.DATA_DIR)
        _service = SubjectLoadService(repo, GradingPolicy())
    return _service


app = FastAPI(title="Subject Load Evaluator")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------- Request models ----------
class SubjectLoadRequest(BaseModel):
    enrollment_id: int
    class_schedule_ids: List[int]
    idempotency_key: Optional[str] = None


class CreditedSubjectInput(BaseModel):
    curriculum_subject_id: int
    credited_units: float
    remarks: Optional[str] = None


class CreditingRequest(BaseModel):
    enrollment_id: int
    subjects: List[CreditedSubjectInput]


def _server_error(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": message},
    )


# --------- Endpoints ----------
@app.get("/enrollments/{enrollment_id}/subject-load")
def subject_load(enrollment_id: int, service: SubjectLoadService = Depends(get_service)):
    try:
        return service.preview(enrollment_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Exception:
        logger.exception("Subject load preview failed for enrollment %s", enrollment_id)
        return _server_error(config.LOAD_ERROR_MESSAGE)


@app.get("/curricula/{curriculum_id}/catalog")
def curriculum_catalog(curriculum_id: int, service: SubjectLoadService = Depends(get_service)):
    try:
        return {"success": True, "data": service.catalog(curriculum_id)}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Exception:
        logger.exception("Catalog failed for curriculum %s", curriculum_id)
        return _server_error("Failed to load curriculum subjects.")


@app.get("/enrollments/{enrollment_id}/prerequisites/{curriculum_subject_id}")
def prerequisites(
    enrollment_id: int,
    curriculum_subject_id: int,
    service: SubjectLoadService = Depends(get_service),
):
    try:
        enrollment = service.repo.get_enrollment(enrollment_id)
        result = service.check_prerequisites(enrollment.student_id, curriculum_subject_id)
        return {"passed": result.passed, "explanation": result.explanation}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Exception:
        logger.exception(
            "Prerequisite check failed for enrollment %s, subject %s", enrollment_id, curriculum_subject_id
        )
        return _server_error("Failed to check prerequisites.")


@app.post("/subject-load")
def store_subject_load(req: SubjectLoadRequest, service: SubjectLoadService = Depends(get_service)):
    try:
        result = service.commit_subject_load(req.enrollment_id, req.class_schedule_ids, req.idempotency_key)
        return asdict(result)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except Exception:
        logger.exception("Subject load commit failed for enrollment %s", req.enrollment_id)
        return _server_error("Failed to load subjects.")


@app.get("/enrollments/{enrollment_id}/grades")
def grades(enrollment_id: int, service: SubjectLoadService = Depends(get_service)):
    try:
        return {"success": True, "grades": service.grade_history(enrollment_id)}
    except NotFoundError:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"success": False, "message": "Enrollment record not found."},
        )
    except Exception:
        logger.exception("Failed to fetch grades for enrollment %s", enrollment_id)
        return _server_error("Failed to fetch grades.")


@app.get("/enrollments/{enrollment_id}/crediting")
def crediting(enrollment_id: int, service: SubjectLoadService = Depends(get_service)):
    try:
        return service.crediting_view(enrollment_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Exception:
        logger.exception("Crediting view failed for enrollment %s", enrollment_id)
        return _server_error("Failed to load subjects for crediting.")


@app.post("/credited-subjects")
def store_credited_subjects(req: CreditingRequest, service: SubjectLoadService = Depends(get_service)):
    try:
        saved = service.store_credited_subjects(
            req.enrollment_id, [s.model_dump() for s in req.subjects]
        )
        return {"success": True, "saved": saved, "message": "Credited subjects saved successfully."}
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except Exception:
        logger.exception("Failed to save credited subjects for enrollment %s", req.enrollment_id)
        return _server_error("Failed to save credited subjects.")


if __name__ == "__main__":
    uvicorn.run("subjectload.app:app", host="0.0.0.0", port=8000, reload=True)
