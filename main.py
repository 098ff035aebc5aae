import logging
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
import pydantic
from pydantic import BaseModel, ConfigDict, Field
from passlib.context import CryptContext
from bson import Decimal128, ObjectId

import database
from balances import compute_balances, exact, to_number, unknown_references
from errors import AuthorizationError, ConflictError, NotFoundError, Reason, SplitError, ValidationError
from intake import validate_expense, validate_group
from schemas import User, Group, Expense

logger = logging.getLogger(__name__)

# Environment
JWT_SECRET = os.getenv("JWT_SECRET", "dev_secret_change_me")
JWT_ALG = "HS256"
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", 60 * 24 * 7))
MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

app = FastAPI(title="SplitWise")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

security = HTTPBearer()


@app.exception_handler(SplitError)
async def split_error_handler(request: Request, exc: SplitError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_error_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(p) for p in err["loc"] if p != "body") for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid request", "details": fields},
    )


@app.exception_handler(pydantic.ValidationError)
async def schema_error_handler(request: Request, exc: pydantic.ValidationError):
    fields = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid data", "details": fields},
    )


# Helpers
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_token(payload: dict, expires_minutes: int = JWT_EXPIRE_MINUTES) -> str:
    to_encode = payload.copy()
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALG)


def get_current_user(creds: HTTPAuthorizationCredentials = Depends(security)) -> dict:
    token = creds.credentials
    try:
        data = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    user_id = data.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return {"_id": user_id, "email": data.get("email"), "name": data.get("name")}


def timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def user_out(user: dict) -> dict:
    return {"id": str(user["_id"]), "name": user.get("name"), "email": user.get("email")}


def expense_from_document(doc: dict) -> Expense:
    fields = {k: doc[k] for k in Expense.model_fields if k in doc}
    amount = fields.get("amount")
    if isinstance(amount, Decimal128):
        fields["amount"] = amount.to_decimal()
    elif isinstance(amount, float):
        fields["amount"] = Decimal(repr(amount))
    return Expense(**fields)


def expense_out(expense_id: str, expense: Expense, created_at: Optional[datetime]) -> dict:
    return {
        "id": expense_id,
        "groupId": expense.group_id,
        "description": expense.description,
        "amount": to_number(exact(expense.amount)),
        "paidBy": expense.paid_by,
        "participants": list(expense.participants),
        "date": expense.date,
        "createdAt": timestamp(created_at),
    }


def group_out(doc: dict) -> dict:
    """Group shape with totals and balances computed from its current expenses."""
    group_id = str(doc["_id"])
    members = doc.get("members", [])
    expenses = [expense_from_document(e) for e in database.get_documents("expense", {"group_id": group_id})]

    stale = unknown_references(members, expenses)
    if stale:
        logger.warning("Group %s has expenses referencing non-members %s; they are skipped", group_id, stale)

    balances, total = compute_balances(members, expenses)
    return {
        "id": group_id,
        "name": doc.get("name"),
        "description": doc.get("description", ""),
        "members": members,
        "totalExpenses": to_number(total),
        "balances": {m: to_number(v) for m, v in balances.items()},
        "createdAt": timestamp(doc.get("created_at")),
    }


def load_owned_group(group_id: str, user: dict) -> dict:
    if not ObjectId.is_valid(group_id):
        raise ValidationError("Invalid group ID")
    doc = database.get_document("group", group_id)
    if not doc:
        raise NotFoundError("Group not found")
    if str(doc.get("owner_id")) != str(user["_id"]):
        raise AuthorizationError("Not authorized to access this group")
    return doc


# Request Models
class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class CreateGroupRequest(BaseModel):
    name: Optional[Any] = None
    description: Optional[Any] = None
    members: Optional[Any] = None


class ExpenseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    group_id: Optional[str] = Field(None, alias="groupId")
    # loosely typed so intake reports its own reasons for wrong-typed input
    description: Optional[Any] = None
    amount: Optional[Any] = None
    paid_by: Optional[Any] = Field(None, alias="paidBy")
    participants: Optional[Any] = None
    date: Optional[Any] = None


@app.get("/")
def root():
    return {"app": "SplitWise", "status": "ok"}


# User endpoints
@app.post("/api/users/register", status_code=201)
def register(payload: RegisterRequest):
    logger.info("Registration attempt for %s", payload.email)
    if not (payload.name and payload.email and payload.password):
        raise ValidationError("All fields are required")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    email = payload.email.lower().strip()
    if database.find_one("user", {"email": email}):
        logger.info("Registration failed: %s already exists", email)
        raise ConflictError("User already exists with this email")

    user = User(name=payload.name.strip(), email=email, password_hash=hash_password(payload.password))
    user_id = database.create_document("user", user)
    logger.info("User created %s", user_id)
    token = create_token({"user_id": user_id, "email": user.email, "name": user.name})
    return {
        "success": True,
        "token": token,
        "user": {"id": user_id, "name": user.name, "email": user.email},
        "message": "User registered successfully",
    }


@app.post("/api/users/login")
def login(payload: LoginRequest):
    if not (payload.email and payload.password):
        raise ValidationError("Email and password are required")
    email = payload.email.lower().strip()
    user = database.find_one("user", {"email": email})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        logger.info("Login failed for %s", email)
        raise ValidationError("Invalid credentials")
    logger.info("Login successful for %s", user["_id"])
    token = create_token({"user_id": str(user["_id"]), "email": user["email"], "name": user.get("name")})
    return {"success": True, "token": token, "user": user_out(user), "message": "Login successful"}


@app.get("/api/users/profile")
def profile(user=Depends(get_current_user)):
    doc = database.get_document("user", user["_id"])
    if not doc:
        raise NotFoundError("User not found")
    return {"success": True, "user": {**user_out(doc), "createdAt": timestamp(doc.get("created_at"))}}


# Group endpoints
@app.post("/api/groups", status_code=201)
def create_group(payload: CreateGroupRequest, user=Depends(get_current_user)):
    try:
        fields = validate_group(payload.name, payload.description, payload.members)
    except ValidationError as e:
        logger.info("Group rejected for %s: %s", user["_id"], e.reason.value)
        raise
    group = Group(owner_id=user["_id"], **fields)
    group_id = database.create_document("group", group)
    logger.info("Group %s created by %s with %d members", group_id, user["_id"], len(group.members))
    return {"success": True, "data": group_out(database.get_document("group", group_id))}


@app.get("/api/groups")
def list_groups(user=Depends(get_current_user)):
    docs = database.get_documents("group", {"owner_id": user["_id"]}, sort=[("created_at", -1), ("_id", -1)])
    return {"success": True, "data": [group_out(d) for d in docs]}


@app.get("/api/groups/{group_id}")
def get_group(group_id: str, user=Depends(get_current_user)):
    return {"success": True, "data": group_out(load_owned_group(group_id, user))}


# Expenses
@app.post("/api/expenses", status_code=201)
def add_expense(payload: ExpenseRequest, user=Depends(get_current_user)):
    if not payload.group_id:
        raise ValidationError("All fields are required", Reason.MISSING_FIELDS, ["groupId"])
    if not ObjectId.is_valid(payload.group_id):
        raise ValidationError("Invalid group ID")
    doc = database.get_document("group", payload.group_id)
    if not doc:
        raise NotFoundError("Group not found")

    group = Group(**{k: doc[k] for k in Group.model_fields if k in doc})
    proposed = payload.model_dump(exclude={"group_id"})
    try:
        fields = validate_expense(group, proposed, user["_id"])
    except SplitError as e:
        logger.info("Expense rejected for group %s: %s", payload.group_id, e.reason.value if e.reason else e.message)
        raise

    expense = Expense(group_id=payload.group_id, created_by=user["_id"], **fields)
    expense_id = database.create_document("expense", expense)
    logger.info("Expense %s added to group %s (%s)", expense_id, payload.group_id, expense.amount)
    created = database.get_document("expense", expense_id)
    return {"success": True, "data": expense_out(expense_id, expense, created.get("created_at"))}


@app.get("/api/expenses/group/{group_id}")
def list_expenses(group_id: str, user=Depends(get_current_user)):
    load_owned_group(group_id, user)
    docs = database.get_documents("expense", {"group_id": group_id}, sort=[("created_at", -1), ("_id", -1)])
    return {
        "success": True,
        "data": [expense_out(str(d["_id"]), expense_from_document(d), d.get("created_at")) for d in docs],
    }


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
