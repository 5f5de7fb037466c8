# backend/routes/auth.py
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db
from models.users import User, ROLE_CUSTOMER
from schemas import user as schemas
from schemas.common import ApiResponse
from utils.audit import write_log, client_ip
from utils.errors import AuthError, EmailTaken, OtpInvalid, ConflictError
from utils.hashing import get_password_hash, verify_password
from utils.otp import issue_otp, otp_matches, is_well_formed, deliver_otp
from utils.tokenJWT import create_access_token, get_current_user

router = APIRouter(prefix="/auth", tags=["Auth"])
logger = logging.getLogger(__name__)

def _find_by_email(db: Session, email: str):
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


# Register a new (unverified) user and send a verification code
@router.post("/register", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
def register(payload: schemas.UserCreate, request: Request, db: Session = Depends(get_db)):
    # Normalize email input
    normalized_email = payload.email.strip().lower()

    existing = _find_by_email(db, normalized_email)
    if existing and existing.is_verified:
        write_log(db, user_id=None, action="REGISTER", resource="auth", status="FAIL",
                  ip=client_ip(request), meta={"email": normalized_email, "reason": "Email exists"})
        raise EmailTaken()
    if existing:
        # An abandoned, never verified registration is replaced
        db.delete(existing)
        db.flush()

    new_user = User(
        name=payload.name.strip(),
        email=normalized_email,
        password_hash=get_password_hash(payload.password),
        role=ROLE_CUSTOMER,
        is_verified=False,
    )
    otp = issue_otp(new_user)
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    deliver_otp(new_user.email, otp)

    write_log(db, user_id=new_user.id, action="REGISTER", resource="auth", status="SUCCESS",
              ip=client_ip(request), meta={"email": new_user.email})
    return ApiResponse(
        message=f"Registration successful. A verification code was sent to {new_user.email}."
    )


# Confirm the email address with the one-time code
@router.post("/verify-otp", response_model=ApiResponse)
def verify_otp(payload: schemas.OtpVerify, request: Request, db: Session = Depends(get_db)):
    if not is_well_formed(payload.otp):
        raise OtpInvalid("The verification code must be 6 digits")

    user = _find_by_email(db, payload.email)
    if not user:
        # Same message as a wrong code, do not reveal which emails exist
        raise OtpInvalid("Email or verification code is incorrect")
    if user.is_verified:
        raise ConflictError("This account is already verified")
    if not otp_matches(user, payload.otp):
        write_log(db, user_id=user.id, action="VERIFY_OTP", resource="auth", status="FAIL",
                  ip=client_ip(request), meta={"email": user.email})
        raise OtpInvalid()

    user.is_verified = True
    user.otp_hash = None
    user.otp_expires_at = None
    db.commit()

    write_log(db, user_id=user.id, action="VERIFY_OTP", resource="auth", status="SUCCESS",
              ip=client_ip(request), meta={"email": user.email})
    return ApiResponse(message="Account verified. You can now log in.")


@router.post("/resend-otp", response_model=ApiResponse)
def resend_otp(payload: schemas.OtpResend, db: Session = Depends(get_db)):
    user = _find_by_email(db, payload.email)
    if not user:
        raise OtpInvalid("No pending registration for this email")
    if user.is_verified:
        raise ConflictError("This account is already verified")

    otp = issue_otp(user)
    db.commit()
    deliver_otp(user.email, otp)
    return ApiResponse(message=f"A new verification code was sent to {user.email}.")


# Authenticate user and issue JWT token
@router.post("/login", response_model=ApiResponse[schemas.TokenResponse])
def login(payload: schemas.UserLogin, request: Request, db: Session = Depends(get_db)):
    db_user = _find_by_email(db, payload.email)

    # Validate credentials and log failure on error
    if not db_user or not verify_password(payload.password, db_user.password_hash):
        write_log(db, user_id=(db_user.id if db_user else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=client_ip(request), meta={"email": payload.email})
        raise AuthError("Invalid credentials")

    if not db_user.is_verified:
        raise AuthError("Account is not verified. Enter the code sent to your email.")

    # Generate access token
    access_token = create_access_token(data={"sub": db_user.email, "role": db_user.role})

    write_log(db, user_id=db_user.id, action="LOGIN", resource="auth",
              status="SUCCESS", ip=client_ip(request), meta={"email": db_user.email})

    return ApiResponse(data=schemas.TokenResponse(
        token=access_token, user=schemas.UserResponse.model_validate(db_user)
    ))


# Retrieve current authenticated user details
@router.get("/me", response_model=ApiResponse[schemas.UserResponse])
def me(current_user: User = Depends(get_current_user)):
    return ApiResponse(data=schemas.UserResponse.model_validate(current_user))
