import logging
import os
import uuid
from datetime import date, datetime
from pathlib import Path

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, File, Header, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import or_, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.sessions import SessionMiddleware

load_dotenv()

from db.deps import get_db
from models.rental_models import AuditLog, Category, Equipment, Rental
from schemas.equipment import AvailabilityRequest, EquipmentCreate, EquipmentUpdate
from schemas.profiles import LoginRequest, ProfileUpdate, SignupRequest
from schemas.rentals import CreateRentalDto, QuoteResponse
from services.blob_store import IMAGE_EXTENSIONS, BlobStoreError, LocalBlobStore
from services.equipment_service import get_images, map_equipment_fields, serialize_category, serialize_equipment
from services.map_service import MAP_RENTAL_STATES, build_map_payload
from services.pricing_service import compute_cost, days_between
from services.profile_service import default_display_name, ensure_profile, serialize_profile
from services.record_store import RecordStore
from services.rental_errors import (
    InvalidTransition,
    PersistenceError,
    ProfileProvisioningError,
    RentalError,
)
from services.rental_service import (
    COMMITTED_STATES,
    apply_transition,
    build_dashboard_stats,
    listing_availability_after,
    resolve_actor_role,
    serialize_rental,
    validate_and_build_request,
)
from services.user_access_service import (
    AccountExistsError,
    create_account,
    create_session,
    get_session,
    remove_session,
    session_identity,
    verify_password,
)
from services.view_refresh import ViewRefreshHub

BASE_DIR = Path(__file__).resolve().parent
UPLOADS_DIR = Path(os.environ.get("MEDRENT_UPLOADS_DIR") or (BASE_DIR / "static" / "uploads"))
UPLOADS_URL = (os.environ.get("MEDRENT_UPLOADS_URL") or "/uploads").rstrip("/")
MAX_IMAGE_BYTES = int(os.environ.get("MEDRENT_MAX_IMAGE_BYTES") or str(5 * 1024 * 1024))


def _log_level(raw: str | None) -> int:
    level = logging.getLevelName((raw or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


logging.getLogger("medical_rental").setLevel(_log_level(os.environ.get("MEDRENT_LOG_LEVEL")))
AUTH_LOGGER = logging.getLogger("medical_rental.auth")
RENTAL_LOGGER = logging.getLogger("medical_rental.rentals")

app = FastAPI(title="Medical Equipment Rental")


def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in str(raw).split(",") if item.strip()]


_CORS_ALLOW_ORIGINS = _parse_csv_env(
    "CORS_ALLOW_ORIGINS",
    "http://127.0.0.1:3000,http://localhost:3000",
)
_CORS_ALLOW_CREDENTIALS = str(os.environ.get("CORS_ALLOW_CREDENTIALS", "true")).strip().lower() in {"1", "true", "yes", "on"}
if "*" in _CORS_ALLOW_ORIGINS:
    # Browsers reject wildcard origins with credentials.
    _CORS_ALLOW_CREDENTIALS = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ALLOW_ORIGINS,
    allow_credentials=_CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(
    SessionMiddleware,
    secret_key=(os.environ.get("SESSION_SIGNING_SECRET") or "").strip(),
    session_cookie="medical_rental_session",
    same_site="lax",
    https_only=False,
)

UPLOADS_DIR.mkdir(parents=True, exist_ok=True)
BLOB_STORE = LocalBlobStore(UPLOADS_DIR, UPLOADS_URL)
VIEW_REFRESH = ViewRefreshHub()

TRANSITION_FAILED_MESSAGE = "Could not update the rental. Please try again."


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


def log_audit(db: Session, entity_type: str, entity_id, action: str, details: str | None = None, user_id: str | None = None) -> None:
    db.add(
        AuditLog(
            EntityType=entity_type,
            EntityID=str(entity_id),
            Action=action,
            Details=details,
            UserID=user_id,
            CreatedAt=datetime.now(),
        )
    )


def _get_active_session(request: Request, session_token: str | None) -> dict | None:
    session_from_token = get_session(session_token)
    if session_from_token:
        request.session["user"] = {**session_from_token, "token": session_token}
        return dict(session_from_token)
    session_from_cookie = request.session.get("user")
    if isinstance(session_from_cookie, dict) and get_session(session_from_cookie.get("token")):
        return dict(session_from_cookie)
    return None


def _require_session_or_401(request: Request, session_token: str | None) -> dict:
    session = _get_active_session(request, session_token)
    if not session:
        raise HTTPException(status_code=401, detail="You must be logged in.")
    return session


def _start_session(request: Request, identity: dict) -> str:
    token = create_session(identity)
    request.session["user"] = {**identity, "token": token}
    return token


def _get_equipment_or_404(store: RecordStore, equipment_id: int) -> Equipment:
    equipment = store.get("equipment", equipment_id)
    if not equipment:
        raise HTTPException(status_code=404, detail="Equipment not found")
    return equipment


def _get_owned_equipment_or_403(store: RecordStore, equipment_id: int, session: dict) -> Equipment:
    equipment = _get_equipment_or_404(store, equipment_id)
    if str(equipment.SellerID) != str(session["accountID"]):
        raise HTTPException(status_code=403, detail="Only the owner can change this listing.")
    return equipment


def _get_rental_for_party(store: RecordStore, rental_id: int, session: dict) -> tuple[Rental, str]:
    rental = store.get("rentals", rental_id)
    if not rental:
        raise HTTPException(status_code=404, detail="Rental not found")
    actor_role = resolve_actor_role(rental, session["accountID"])
    if actor_role is None:
        raise HTTPException(status_code=403, detail="You are not a party to this rental.")
    return rental, actor_role


@app.get("/healthz")
def healthcheck():
    return {"status": "ok"}


@app.get("/api/healthz")
def healthcheck_api(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok"}
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=503, detail=f"db_unavailable: {exc}") from exc


@app.post("/api/auth/signup")
def auth_signup(payload: SignupRequest, request: Request, store: RecordStore = Depends(get_store)):
    try:
        with store.transaction():
            account = create_account(store.db, payload.email, payload.password, payload.fullName)
            store.db.flush()
            profile = store.create(
                "profiles",
                {
                    "ProfileID": account.AccountID,
                    "Role": payload.role,
                    "FullName": default_display_name(payload.fullName, account.Email),
                    "HospitalName": (payload.hospitalName or "").strip() or None,
                    "Verified": False,
                },
            )
            log_audit(store.db, "Account", account.AccountID, "Signup", f"role={payload.role}", user_id=account.AccountID)
    except AccountExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    identity = session_identity(account)
    token = _start_session(request, identity)
    AUTH_LOGGER.info("Signup account=%s", account.AccountID)
    return {"sessionToken": token, "user": identity, "profile": serialize_profile(profile)}


@app.post("/api/auth/login")
def auth_login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    account = verify_password(db, payload.email, payload.password)
    if not account:
        AUTH_LOGGER.warning("Login failed email=%s", payload.email.strip().lower())
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    identity = session_identity(account)
    token = _start_session(request, identity)
    log_audit(db, "Account", account.AccountID, "LoginSuccess", None, user_id=account.AccountID)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        AUTH_LOGGER.exception("Could not record login for %s", account.AccountID)
    AUTH_LOGGER.info("Login success account=%s", account.AccountID)
    return {"sessionToken": token, "user": identity}


@app.post("/api/auth/logout")
def auth_logout(request: Request, x_session_token: str | None = Header(None, alias="X-Session-Token")):
    cookie_user = request.session.get("user")
    if isinstance(cookie_user, dict):
        remove_session(cookie_user.get("token"))
    request.session.clear()
    remove_session(x_session_token)
    return {"ok": True}


@app.get("/api/auth/me")
def auth_me(
    request: Request,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    profile = store.get("profiles", session["accountID"])
    return {
        "user": {key: session.get(key) for key in ("accountID", "email", "fullName")},
        "profile": serialize_profile(profile) if profile else None,
    }


@app.get("/api/profile")
def get_profile(
    request: Request,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    profile = store.get("profiles", session["accountID"])
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return serialize_profile(profile)


@app.put("/api/profile")
def update_profile(
    request: Request,
    payload: ProfileUpdate,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    field_map = {
        "fullName": "FullName",
        "hospitalName": "HospitalName",
        "role": "Role",
        "phone": "Phone",
        "address": "Address",
        "city": "City",
        "latitude": "Latitude",
        "longitude": "Longitude",
        "avatarUrl": "AvatarUrl",
    }
    changes = {field_map[key]: value for key, value in payload.model_dump(exclude_unset=True).items()}
    try:
        with store.transaction():
            ensure_profile(store, session)
            profile = store.update("profiles", session["accountID"], changes)
    except RentalError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return serialize_profile(profile)


@app.get("/api/categories")
def get_categories(store: RecordStore = Depends(get_store)):
    categories = store.query("categories", order_by=Category.Name)
    return [serialize_category(category) for category in categories]


@app.get("/api/equipment")
def get_equipment(
    request: Request,
    q: str = Query("", alias="q"),
    category_id: int | None = Query(None, alias="categoryID"),
    limit: int = Query(20, ge=1, le=100),
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _get_active_session(request, x_session_token)
    filters = {"Available": True}
    if category_id is not None:
        filters["CategoryID"] = category_id
    conditions = []
    if session:
        conditions.append(Equipment.SellerID != session["accountID"])
    query = (q or "").strip()
    if query:
        pattern = f"%{query}%"
        conditions.append(or_(Equipment.Name.ilike(pattern), Equipment.Brand.ilike(pattern), Equipment.City.ilike(pattern)))
    rows = store.query("equipment", filters, *conditions, order_by=Equipment.CreatedAt.desc(), limit=limit)
    return [serialize_equipment(equipment) for equipment in rows]


@app.get("/api/equipment/mine")
def get_my_equipment(
    request: Request,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    rows = store.query("equipment", {"SellerID": session["accountID"]}, order_by=Equipment.CreatedAt.desc())
    return [serialize_equipment(equipment) for equipment in rows]


@app.get("/api/equipment/{equipment_id}")
def get_equipment_item(equipment_id: int, store: RecordStore = Depends(get_store)):
    equipment = _get_equipment_or_404(store, equipment_id)
    try:
        with store.transaction():
            store.update("equipment", equipment_id, {"ViewsCount": int(equipment.ViewsCount or 0) + 1, "UpdatedAt": equipment.UpdatedAt})
    except PersistenceError:
        RENTAL_LOGGER.warning("Could not count view for equipment %s", equipment_id)
        equipment = _get_equipment_or_404(store, equipment_id)
    return serialize_equipment(equipment)


@app.get("/api/equipment/{equipment_id}/quote", response_model=QuoteResponse)
def quote_equipment(
    equipment_id: int,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    store: RecordStore = Depends(get_store),
):
    equipment = _get_equipment_or_404(store, equipment_id)
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="End date must be on or after the start date.")
    days = days_between(start_date, end_date)
    total = compute_cost(equipment.DailyRate, equipment.WeeklyRate, equipment.MonthlyRate, days) if days > 0 else None
    return QuoteResponse(equipmentID=equipment_id, startDate=start_date, endDate=end_date, days=days, totalAmount=total)


@app.post("/api/equipment")
def create_equipment(
    request: Request,
    payload: EquipmentCreate,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    fields = map_equipment_fields(payload.model_dump())
    fields.update({"SellerID": session["accountID"], "Available": True, "Images": "[]", "ViewsCount": 0})
    try:
        with store.transaction():
            ensure_profile(store, session)
            equipment = store.create("equipment", fields)
            log_audit(store.db, "Equipment", equipment.EquipmentID, "CreateEquipment", equipment.Name, user_id=session["accountID"])
    except ProfileProvisioningError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    VIEW_REFRESH.publish("equipment.created", {"equipmentID": equipment.EquipmentID})
    return serialize_equipment(equipment)


@app.put("/api/equipment/{equipment_id}")
def update_equipment(
    request: Request,
    equipment_id: int,
    payload: EquipmentUpdate,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    _get_owned_equipment_or_403(store, equipment_id, session)
    changes = map_equipment_fields(payload.model_dump(exclude_unset=True))
    try:
        with store.transaction():
            equipment = store.update("equipment", equipment_id, changes)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    VIEW_REFRESH.publish("equipment.updated", {"equipmentID": equipment_id})
    return serialize_equipment(equipment)


@app.post("/api/equipment/{equipment_id}/availability")
def set_equipment_availability(
    request: Request,
    equipment_id: int,
    payload: AvailabilityRequest,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    _get_owned_equipment_or_403(store, equipment_id, session)
    try:
        with store.transaction():
            equipment = store.update("equipment", equipment_id, {"Available": payload.available})
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    VIEW_REFRESH.publish("equipment.updated", {"equipmentID": equipment_id})
    return serialize_equipment(equipment)


@app.post("/api/equipment/{equipment_id}/images")
def upload_equipment_image(
    request: Request,
    equipment_id: int,
    file: UploadFile = File(...),
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    equipment = _get_owned_equipment_or_403(store, equipment_id, session)
    ext = os.path.splitext(file.filename or "")[1].lower()
    if ext not in IMAGE_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Only image uploads are supported.")
    data = file.file.read(MAX_IMAGE_BYTES + 1)
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")
    if len(data) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=413, detail="Image is too large.")

    blob_path = f"equipment/{equipment_id}/{uuid.uuid4().hex}{ext}"
    try:
        url = BLOB_STORE.put(blob_path, data)
    except BlobStoreError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    images = get_images(equipment) + [url]
    try:
        with store.transaction():
            equipment = store.update("equipment", equipment_id, map_equipment_fields({"images": images}))
    except PersistenceError as exc:
        BLOB_STORE.delete(blob_path)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return {"path": url, "images": get_images(equipment)}


@app.delete("/api/equipment/{equipment_id}/images")
def delete_equipment_image(
    request: Request,
    equipment_id: int,
    path: str = Query(...),
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    equipment = _get_owned_equipment_or_403(store, equipment_id, session)
    images = get_images(equipment)
    if path not in images:
        raise HTTPException(status_code=404, detail="Image not found on this listing.")
    remaining = [image for image in images if image != path]
    try:
        with store.transaction():
            store.update("equipment", equipment_id, map_equipment_fields({"images": remaining}))
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    try:
        removed = BLOB_STORE.delete(path)
    except BlobStoreError:
        removed = False
    return {"images": remaining, "blobRemoved": removed}


@app.post("/api/rentals")
def create_rental(
    request: Request,
    payload: CreateRentalDto,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    requester_id = session["accountID"]
    equipment = _get_equipment_or_404(store, payload.equipmentID)

    try:
        draft = validate_and_build_request(payload, equipment, requester_id)
    except RentalError as exc:
        RENTAL_LOGGER.info("Rental request rejected equipment=%s buyer=%s: %s", equipment.EquipmentID, requester_id, exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        with store.transaction():
            ensure_profile(store, session)
            rental = store.create("rentals", draft.to_record())
            log_audit(
                store.db,
                "Rental",
                rental.RentalID,
                "CreateRental",
                f"{draft.days} days, total {draft.totalAmount}",
                user_id=requester_id,
            )
    except ProfileProvisioningError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail=f"Failed to submit request: {exc}") from exc

    RENTAL_LOGGER.info("Rental %s requested equipment=%s buyer=%s", rental.RentalID, equipment.EquipmentID, requester_id)
    VIEW_REFRESH.publish("rental.created", {"rentalID": rental.RentalID, "sellerID": rental.SellerID, "buyerID": rental.BuyerID})
    return serialize_rental(rental, requester_id)


@app.get("/api/rentals/mine")
def get_my_rentals(
    request: Request,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    rows = store.query("rentals", {"BuyerID": session["accountID"]}, order_by=Rental.CreatedAt.desc())
    return [serialize_rental(rental, session["accountID"]) for rental in rows]


@app.get("/api/rentals/requests")
def get_incoming_requests(
    request: Request,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    rows = store.query("rentals", {"SellerID": session["accountID"]}, order_by=Rental.CreatedAt.desc())
    return [serialize_rental(rental, session["accountID"]) for rental in rows]


@app.get("/api/rentals/{rental_id}")
def get_rental(
    request: Request,
    rental_id: int,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    rental, _ = _get_rental_for_party(store, rental_id, session)
    return serialize_rental(rental, session["accountID"])


def _run_transition(request: Request, rental_id: int, action: str, store: RecordStore, session_token: str | None) -> dict:
    session = _require_session_or_401(request, session_token)
    party_id = session["accountID"]
    rental, actor_role = _get_rental_for_party(store, rental_id, session)
    previous = rental.Status

    try:
        with store.transaction():
            other_commitments = len(
                store.query(
                    "rentals",
                    {"EquipmentID": rental.EquipmentID, "Status": list(COMMITTED_STATES)},
                    Rental.RentalID != rental.RentalID,
                )
            )
            apply_transition(rental, action, actor_role, other_commitments=other_commitments)
            listing_available = listing_availability_after(rental, other_commitments)
            if listing_available is not None:
                store.update("equipment", rental.EquipmentID, {"Available": listing_available})
            log_audit(store.db, "Rental", rental.RentalID, action.capitalize(), f"{previous} -> {rental.Status} by {actor_role}", user_id=party_id)
    except InvalidTransition as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except PersistenceError as exc:
        RENTAL_LOGGER.error("Transition %s failed for rental %s: %s", action, rental_id, exc)
        raise HTTPException(status_code=500, detail=TRANSITION_FAILED_MESSAGE) from exc

    RENTAL_LOGGER.info("Rental %s %s -> %s by %s", rental.RentalID, previous, rental.Status, actor_role)
    VIEW_REFRESH.publish(
        "rental.status",
        {"rentalID": rental.RentalID, "from": previous, "to": rental.Status, "sellerID": rental.SellerID, "buyerID": rental.BuyerID},
    )
    return serialize_rental(rental, party_id)


@app.post("/api/rentals/{rental_id}/approve")
def approve_rental(
    request: Request,
    rental_id: int,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    return _run_transition(request, rental_id, "approve", store, x_session_token)


@app.post("/api/rentals/{rental_id}/reject")
def reject_rental(
    request: Request,
    rental_id: int,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    return _run_transition(request, rental_id, "reject", store, x_session_token)


@app.post("/api/rentals/{rental_id}/cancel")
def cancel_rental(
    request: Request,
    rental_id: int,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    return _run_transition(request, rental_id, "cancel", store, x_session_token)


@app.post("/api/rentals/{rental_id}/deliver")
def deliver_rental(
    request: Request,
    rental_id: int,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    return _run_transition(request, rental_id, "deliver", store, x_session_token)


@app.post("/api/rentals/{rental_id}/complete")
def complete_rental(
    request: Request,
    rental_id: int,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    return _run_transition(request, rental_id, "complete", store, x_session_token)


@app.get("/api/dashboard")
def get_dashboard(
    request: Request,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    session = _require_session_or_401(request, x_session_token)
    party_id = session["accountID"]
    my_equipment = store.query("equipment", {"SellerID": party_id})
    my_rentals = store.query("rentals", {"BuyerID": party_id})
    incoming = store.query("rentals", {"SellerID": party_id})
    return build_dashboard_stats(my_equipment, my_rentals, incoming)


@app.get("/api/map/markers")
def get_map_markers(
    request: Request,
    store: RecordStore = Depends(get_store),
    x_session_token: str | None = Header(None, alias="X-Session-Token"),
):
    _require_session_or_401(request, x_session_token)
    equipment_rows = store.query(
        "equipment",
        None,
        Equipment.Latitude.is_not(None),
        Equipment.Longitude.is_not(None),
    )
    rental_rows = store.query(
        "rentals",
        {"Status": list(MAP_RENTAL_STATES)},
        Rental.DeliveryLatitude.is_not(None),
        Rental.DeliveryLongitude.is_not(None),
    )
    return build_map_payload(equipment_rows, rental_rows)


app.mount(UPLOADS_URL, StaticFiles(directory=str(UPLOADS_DIR)), name="uploads")
