from fastapi import HTTPException, status

from floodwatch.models import Ward


def get_or_404(session, model, item_id, message):
    item = session.get(model, item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)
    return item


def require_ward(session, ward_id, missing_status=status.HTTP_400_BAD_REQUEST, message="Invalid ward ID"):
    """Ward referenced by a record; 400 for a bad foreign key, 404 when it is the subject of the route."""
    ward = session.get(Ward, ward_id)
    if ward is None:
        raise HTTPException(status_code=missing_status, detail=message)
    return ward


def ward_not_found(session, ward_id):
    return require_ward(session, ward_id, status.HTTP_404_NOT_FOUND, "Ward not found")
