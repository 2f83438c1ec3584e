import logging
import re
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

import config
from auth import IdentityServiceError, Identity, is_admin, require_admin, require_token
from config import ConfigurationError
from database import (
    BOOKINGS,
    CONTACT,
    PROPERTIES,
    REVIEWS,
    USERS,
    create_document,
    delete_document,
    ensure_indexes,
    get_db,
    get_document,
    get_documents,
    id_filter,
    reset_client,
    update_document,
    utcnow,
)
from schemas import (
    BookingCreate,
    BookingUpdate,
    ContactMessage,
    PropertyCreate,
    PropertyStatusUpdate,
    PropertyUpdate,
    ReviewCreate,
    RoleUpdate,
    UserCreate,
)

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, PATCH, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

LATEST_PROPERTIES_LIMIT = 6


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_indexes(get_db())
    except PyMongoError as exc:
        logger.warning("Could not ensure indexes at startup: %s", exc)

    yield

    reset_client()


app = FastAPI(title="HomeNest API", lifespan=lifespan)


# Preflights get an empty 200; every other response gets the same CORS headers
@app.middleware("http")
async def cors_headers(request: Request, call_next):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


def internal_error() -> JSONResponse:
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.exception_handler(PyMongoError)
async def store_failure(request: Request, exc: PyMongoError):
    logger.error("Store error on %s %s", request.method, request.url.path, exc_info=exc)
    return internal_error()


@app.exception_handler(IdentityServiceError)
async def identity_service_failure(request: Request, exc: IdentityServiceError):
    logger.error("Identity service error on %s %s", request.method, request.url.path, exc_info=exc)
    return internal_error()


@app.exception_handler(ConfigurationError)
async def configuration_failure(request: Request, exc: ConfigurationError):
    logger.error("Configuration error on %s %s: %s", request.method, request.url.path, exc)
    return internal_error()


@app.get("/")
def root():
    return {
        "message": "HomeNest API is running successfully!",
        "endpoints": {
            "properties": "/properties",
            "users": "/users",
            "bookings": "/bookings",
            "reviews": "/reviews",
            "contact": "/contact",
        },
    }


# Users

@app.post("/users")
def register_user(payload: UserCreate, db: Database = Depends(get_db)):
    if get_document(db, USERS, {"email": payload.email}):
        return {"message": "User already exists"}
    user_doc = {**payload.model_dump(), "role": "user"}
    try:
        return create_document(db, USERS, user_doc)
    except DuplicateKeyError:
        # lost a race with a concurrent registration of the same email
        return {"message": "User already exists"}


@app.get("/users")
def list_users(email: Optional[str] = None, db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    query = {"email": email} if email else {}
    return get_documents(db, USERS, query)


@app.get("/users/{email}")
def get_user(email: str, db: Database = Depends(get_db), identity: Identity = Depends(require_token)):
    user = get_document(db, USERS, {"email": email})
    if not user:
        raise HTTPException(404, "User not found")
    return user


@app.patch("/users/{email}")
def change_user_role(
    email: str,
    payload: RoleUpdate,
    db: Database = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    logger.info("%s sets role of %s to %s", admin["email"], email, payload.role)
    return update_document(db, USERS, {"email": email}, {"role": payload.role})


@app.delete("/users/{email}")
def delete_user(email: str, db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    return delete_document(db, USERS, {"email": email})


# Properties

@app.get("/properties")
def list_properties(
    search: Optional[str] = None,
    category: Optional[str] = None,
    sortBy: Optional[str] = None,
    db: Database = Depends(get_db),
):
    query = {}
    if search:
        query["propertyName"] = {"$regex": re.escape(search), "$options": "i"}
    if category:
        query["category"] = category

    sort = None
    if sortBy == "price":
        sort = [("price", 1)]
    elif sortBy == "date":
        sort = [("createdAt", -1)]
    return get_documents(db, PROPERTIES, query, sort=sort)


@app.get("/latest-properties")
def latest_properties(db: Database = Depends(get_db)):
    return get_documents(db, PROPERTIES, sort=[("createdAt", -1)], limit=LATEST_PROPERTIES_LIMIT)


@app.get("/my-properties")
def my_properties(db: Database = Depends(get_db), identity: Identity = Depends(require_token)):
    return get_documents(db, PROPERTIES, {"ownerEmail": identity.email}, sort=[("createdAt", -1)])


@app.get("/properties/{prop_id}")
def get_property(prop_id: str, db: Database = Depends(get_db), identity: Identity = Depends(require_token)):
    doc = get_document(db, PROPERTIES, id_filter(prop_id))
    if not doc:
        raise HTTPException(404, "Property not found")
    return doc


@app.post("/properties")
def create_property(
    payload: PropertyCreate,
    db: Database = Depends(get_db),
    identity: Identity = Depends(require_token),
):
    doc = {**payload.model_dump(), "ownerEmail": identity.email, "status": "available"}
    return create_document(db, PROPERTIES, doc)


@app.put("/properties/{prop_id}")
def update_property(
    prop_id: str,
    payload: PropertyUpdate,
    db: Database = Depends(get_db),
    identity: Identity = Depends(require_token),
):
    updates = payload.model_dump(exclude={"status"})
    if payload.status:
        updates["status"] = payload.status
    updates["updatedAt"] = utcnow()
    return update_document(db, PROPERTIES, id_filter(prop_id), updates)


@app.patch("/properties/{prop_id}")
def change_property_status(
    prop_id: str,
    payload: PropertyStatusUpdate,
    db: Database = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    return update_document(db, PROPERTIES, id_filter(prop_id), {"status": payload.status, "updatedAt": utcnow()})


@app.delete("/properties/{prop_id}")
def delete_property(prop_id: str, db: Database = Depends(get_db), identity: Identity = Depends(require_token)):
    return delete_document(db, PROPERTIES, id_filter(prop_id))


# Bookings

@app.post("/bookings")
def create_booking(
    payload: BookingCreate,
    db: Database = Depends(get_db),
    identity: Identity = Depends(require_token),
):
    booking = {
        **payload.model_dump(),
        "userEmail": identity.email,
        "status": "Pending",
        "paymentStatus": "Unpaid",
    }
    result = create_document(db, BOOKINGS, booking)

    # Not transactional: if this write fails the booking stays recorded
    # against a property still marked available.
    update_document(db, PROPERTIES, id_filter(payload.propertyId), {"status": "booked", "updatedAt": utcnow()})
    logger.info("Booking %s marked property %s as booked", result["insertedId"], payload.propertyId)
    return result


@app.get("/my-bookings")
def my_bookings(db: Database = Depends(get_db), identity: Identity = Depends(require_token)):
    return get_documents(db, BOOKINGS, {"userEmail": identity.email}, sort=[("createdAt", -1)])


@app.get("/all-bookings")
def all_bookings(
    email: Optional[str] = None,
    propertyId: Optional[str] = None,
    db: Database = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    query = {}
    if email:
        query["userEmail"] = email
    if propertyId:
        query["propertyId"] = propertyId
    return get_documents(db, BOOKINGS, query, sort=[("createdAt", -1)])


@app.patch("/bookings/{booking_id}")
def update_booking(
    booking_id: str,
    payload: BookingUpdate,
    db: Database = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    updates = payload.model_dump(exclude_none=True)
    if not updates:
        return {"message": "No changes"}
    return update_document(db, BOOKINGS, id_filter(booking_id), updates)


@app.delete("/bookings/{booking_id}")
def delete_booking(booking_id: str, db: Database = Depends(get_db), identity: Identity = Depends(require_token)):
    return delete_document(db, BOOKINGS, id_filter(booking_id))


# Reviews

@app.get("/reviews")
def list_reviews(
    propertyId: Optional[str] = None,
    email: Optional[str] = None,
    db: Database = Depends(get_db),
):
    query = {}
    if propertyId:
        query["propertyId"] = propertyId
    if email:
        query["reviewerEmail"] = email
    return get_documents(db, REVIEWS, query, sort=[("createdAt", -1)])


@app.get("/my-reviews")
def my_reviews(db: Database = Depends(get_db), identity: Identity = Depends(require_token)):
    return get_documents(db, REVIEWS, {"reviewerEmail": identity.email}, sort=[("createdAt", -1)])


@app.get("/reviews/{property_id}")
def property_reviews(property_id: str, db: Database = Depends(get_db)):
    return get_documents(db, REVIEWS, {"propertyId": property_id}, sort=[("createdAt", -1)])


@app.post("/reviews")
def create_review(
    payload: ReviewCreate,
    db: Database = Depends(get_db),
    identity: Identity = Depends(require_token),
):
    review = {**payload.model_dump(), "reviewerEmail": identity.email}
    return create_document(db, REVIEWS, review)


@app.delete("/reviews/{review_id}")
def delete_review(review_id: str, db: Database = Depends(get_db), identity: Identity = Depends(require_token)):
    query = id_filter(review_id)
    review = get_document(db, REVIEWS, query)
    if review and review.get("reviewerEmail") != identity.email and not is_admin(identity, db):
        raise HTTPException(403, "You can only delete your own reviews.")
    return delete_document(db, REVIEWS, query)


# Contact messages

@app.post("/contact")
def send_contact_message(payload: ContactMessage, db: Database = Depends(get_db)):
    message = {**payload.model_dump(), "status": "new"}
    return create_document(db, CONTACT, message)


@app.get("/contact")
def list_contact_messages(db: Database = Depends(get_db), admin: dict = Depends(require_admin)):
    return get_documents(db, CONTACT, sort=[("createdAt", -1)])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
