"""
Test Result API Entrypoint - Thin API with Command Dispatch
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

import config
from covid_result import bootstrap, views
from covid_result.domain import commands, model
from covid_result.service_layer import handlers, messagebus
from covid_result.service_layer.unit_of_work import AbstractUnitOfWork

logging.basicConfig(
    level=getattr(logging, config.get_log_level()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

router = APIRouter()


def get_uow(request: Request) -> AbstractUnitOfWork:
    return request.app.state.uow_factory()


# ---------- Request/Response models ----------

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResultRequest(CamelModel):
    last_name: Optional[str] = None
    health_care_number: Optional[str] = None
    birth_date: Optional[str] = None     # YYYY-MM-DD or YYYYMMDD


class NotificationRequestIn(ResultRequest):
    notification_telephone: Optional[str] = None
    preferred_language: Optional[str] = None


class ResultResponse(CamelModel):
    patient_name: str
    birth_date: str                      # YYYY-MM-DD
    collection_timestamp: datetime
    result_entered_timestamp: Optional[datetime]
    result: str = "Negative"

    @classmethod
    def from_record(cls, record: model.TestRecord) -> "ResultResponse":
        # The stored result text is never echoed back, only the literal "Negative".
        return cls(
            patient_name=model.format_patient_name(record.patient_name),
            birth_date=model.format_birth_date(record.dob),
            collection_timestamp=record.collection_time,
            result_entered_timestamp=record.result_entered_time,
        )


class NotificationResponse(BaseModel):
    message: str


# ---------- Endpoints ----------

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "covid-test-result-api",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/status", response_class=PlainTextResponse, summary="Verify connection to the clinical store")
def get_status(uow: AbstractUnitOfWork = Depends(get_uow)):
    try:
        msg = views.check_status(uow)
        logger.info(msg)
        return PlainTextResponse(msg, status_code=200)
    except Exception as e:
        logger.error(f"Attempt to verify API status failed: {e}")
        return PlainTextResponse("Attempt to verify API status failed.", status_code=500)


@router.put(
    "/test-result",
    response_model=ResultResponse,
    responses={204: {"description": "The requested test result is Not Ready."}},
    summary="Retrieve a test result",
)
def retrieve_test_result(body: ResultRequest, uow: AbstractUnitOfWork = Depends(get_uow)):
    """
    Retrieve the latest test result for a patient.

    Only a Negative result is released (200). Any other outcome, including a
    pending or positive result, is answered with 204 and no data.
    """
    cmd = commands.RetrieveTestResult(
        last_name=body.last_name,
        health_care_number=body.health_care_number,
        birth_date=body.birth_date,
    )
    try:
        record = messagebus.handle(cmd, uow).pop(0)
    except handlers.InvalidRequest:
        raise HTTPException(status_code=400, detail="Bad request")
    except handlers.ResultNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Attempt to retrieve test result failed: {e}")
        raise HTTPException(status_code=500, detail="Attempt to retrieve test result failed.")

    if record is None:
        return Response(status_code=204)
    return ResultResponse.from_record(record)


@router.put("/notification-request", response_model=NotificationResponse, summary="Request an SMS notification")
def request_notification(body: NotificationRequestIn, uow: AbstractUnitOfWork = Depends(get_uow)):
    """Request an SMS notification once a test result is ready."""
    cmd = commands.RequestNotification(
        last_name=body.last_name,
        health_care_number=body.health_care_number,
        birth_date=body.birth_date,
        notification_telephone=body.notification_telephone,
        preferred_language=body.preferred_language,
    )
    try:
        messagebus.handle(cmd, uow)
    except handlers.InvalidRequest:
        raise HTTPException(status_code=400, detail="Bad request")
    except handlers.ResultNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Attempt to request an SMS notification failed: {e}")
        raise HTTPException(status_code=500, detail="Unable to record the request for an SMS notification.")

    return NotificationResponse(message="SMS notification has been requested.")


@router.get("/to-notify", summary="Recent notification requests that now have a Negative result")
def get_due_notifications(uow: AbstractUnitOfWork = Depends(get_uow)) -> List[Dict[str, Any]]:
    try:
        return views.list_due_notifications(uow)
    except Exception as e:
        logger.error(f"Attempt to retrieve recent SMS notifications failed: {e}")
        raise HTTPException(status_code=500, detail="Attempt to retrieve recent SMS notifications failed.")


@router.get("/verify-negative-results", response_class=PlainTextResponse, summary="Audit released Negative results")
def verify_negative_results(uow: AbstractUnitOfWork = Depends(get_uow)):
    try:
        verified, msg = views.verify_negative_results(uow)
    except Exception as e:
        logger.error(f"Attempt to verify Negative results failed: {e}")
        return PlainTextResponse("Attempt to verify Negative results failed.", status_code=500)

    logger.info(msg)
    return PlainTextResponse(msg, status_code=200 if verified else 400)


async def bad_request_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected malformed request body: {exc.errors()}")
    return JSONResponse(status_code=400, content={"detail": "Bad request"})


def create_app(
    uow_factory: Optional[Callable[[], AbstractUnitOfWork]] = None,
    start_orm: bool = True,
) -> FastAPI:
    app = FastAPI(
        title="Get a COVID-19 Test Result API",
        description="Middleware API for retrieving COVID-19 test results and requesting SMS notifications",
        version="1.3.0"
    )
    app.state.uow_factory = bootstrap.bootstrap(start_orm=start_orm, uow_factory=uow_factory)
    app.add_exception_handler(RequestValidationError, bad_request_handler)
    app.include_router(router)
    return app


def main():
    uvicorn.run(
        "covid_result.entrypoints.api:create_app",
        factory=True,
        log_level=config.get_log_level().lower(),
        **config.get_api_host_and_port(),
    )


if __name__ == "__main__":
    main()
