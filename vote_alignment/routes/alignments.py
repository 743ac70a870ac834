"""Read access to persisted alignment results."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException

from vote_alignment.lib.database import fetch_alignments, get_supabase

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def list_alignments(year: Optional[int] = None):
    """Legislator alignment rows for a year, highest score first."""
    year = year or datetime.now().year
    supabase = get_supabase()
    if not supabase:
        raise HTTPException(status_code=503, detail="Supabase client not available")

    try:
        rows = fetch_alignments(supabase, year)
    except Exception as e:
        logger.error(f"Failed to read alignments for {year}: {e}")
        raise HTTPException(status_code=500, detail="Failed to read alignments")

    return {"year": year, "alignments": rows, "total": len(rows)}
