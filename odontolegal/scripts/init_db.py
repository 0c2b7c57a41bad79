import asyncio
from odontolegal.database import engine, Base

# Import all models to ensure they are registered in Base.metadata
from odontolegal.auth.models import User
from odontolegal.cases.models import Case
from odontolegal.evidence.models import Evidence
from odontolegal.reports.models import Report, ReportVersion
from odontolegal.dental.models import DentalRecord, MatchRecord
from odontolegal.history.models import HistoryEntry

async def init_models():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Database tables created.")

if __name__ == "__main__":
    asyncio.run(init_models())
