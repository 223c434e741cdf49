"""
Debug endpoints: cache sizes and poll cursors.
"""

from fastapi import APIRouter, Depends

from balancedesk.store import CacheStore, get_store

router = APIRouter(prefix="/api/debug", tags=["debug"])


@router.get("/db")
async def debug_db(store: CacheStore = Depends(get_store)):
    doc = store.doc
    return {
        "ok": True,
        "size": {
            "profiles": len(doc.profiles),
            "orders": len(doc.orders),
            "charges": len(doc.charges),
            "offers": len(doc.offers),
            "notifications": len(doc.notifications),
        },
        "tgOffsets": doc.tg_offsets,
    }


@router.post("/clear-updates")
async def clear_updates(store: CacheStore = Depends(get_store)):
    """Forget all poll cursors. Pending updates will be dispatched again."""
    store.doc.tg_offsets = {}
    store.persist()
    return {"ok": True}
