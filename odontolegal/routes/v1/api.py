from fastapi import APIRouter

from odontolegal.cases.router import router as cases_router
from odontolegal.evidence.router import router as evidence_router
from odontolegal.reports.router import router as reports_router
from odontolegal.dental.router import router as dental_router
from odontolegal.history.router import router as history_router

api_router = APIRouter()

api_router.include_router(cases_router)
api_router.include_router(evidence_router)
api_router.include_router(reports_router)
api_router.include_router(dental_router)
api_router.include_router(history_router)
