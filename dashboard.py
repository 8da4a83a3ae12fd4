import logging
from typing import Iterable

from fastapi import APIRouter, Depends
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()

# First present field wins when totalling a bill
REVENUE_FIELDS = ("paid", "amountPaid", "amount")


def safe_count(db: Database, collection_name: str) -> int:
    try:
        return db[collection_name].count_documents({})
    except PyMongoError as e:
        logger.warning("Could not count %s: %s", collection_name, e)
        return 0


def bill_amount(bill: dict) -> float:
    for field in REVENUE_FIELDS:
        value = bill.get(field)
        if value is not None:
            return float(value)
    return 0


def total_revenue(bills: Iterable[dict]) -> float:
    return sum(bill_amount(bill) for bill in bills)


def compute_stats(db: Database) -> dict:
    stats = {
        "totalEvents": safe_count(db, "events"),
        "totalQuotations": safe_count(db, "quotations"),
        "totalBills": safe_count(db, "billing"),
    }
    projection = {field: 1 for field in REVENUE_FIELDS}
    try:
        stats["revenue"] = total_revenue(db["billing"].find({}, projection))
    except (PyMongoError, TypeError, ValueError) as e:
        logger.warning("Revenue aggregation failed: %s", e)
        stats["revenue"] = 0
    return stats


@router.get("")
def dashboard(db: Database = Depends(get_db)):
    return {"stats": compute_stats(db)}


@router.get("/stats")
def dashboard_stats(db: Database = Depends(get_db)):
    return compute_stats(db)
