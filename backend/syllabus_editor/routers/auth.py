from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import AuthUser, AuthSession

router = APIRouter(prefix="/auth", tags=["auth"])

logger = logging.getLogger(__name__)
logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class User(BaseModel):
	uid: str
	email: Optional[str] = None
	display_name: Optional[str] = None
	role: str = ROLE_USER

	@property
	def is_admin(self) -> bool:
		return self.role == ROLE_ADMIN


def hash_password(password: str) -> str:
	# bcrypt only looks at the first 72 bytes
	password_bytes = password.encode('utf-8')
	if len(password_bytes) > 72:
		password_bytes = password_bytes[:72]
	return pwd_context.hash(password_bytes.decode('utf-8', errors='ignore'))


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(plain_password, hashed_password)


def role_for_email(email: str) -> str:
	admin_email = (settings.admin_email or "").strip().lower()
	return ROLE_ADMIN if admin_email and email.strip().lower() == admin_email else ROLE_USER


def _ensure_seed_user(db: Session) -> None:
	email = settings.seed_email
	password = settings.seed_password_plain
	if not email or not password:
		return
	if db.query(AuthUser).filter(AuthUser.email == email).first():
		return
	db.add(AuthUser(uid=uuid.uuid4().hex, email=email, password_hash=hash_password(password), role=role_for_email(email)))
	db.commit()


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
	_ensure_seed_user(db)
	row = db.query(AuthUser).filter(AuthUser.email == email).first()
	if row and verify_password(password, row.password_hash):
		return User(uid=row.uid, email=row.email, display_name=row.display_name, role=row.role or ROLE_USER)
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = getattr(settings, "access_token_expire_minutes", None)
		if isinstance(minutes, int) and minutes > 0:
			delta = timedelta(minutes=minutes)
		else:
			delta = timedelta(days=30)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		# Cap at far future but within datetime bounds
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	expire = _resolve_expiry(expires_delta)
	to_encode.update({"exp": expire})
	encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
	return encoded_jwt


def _require_db(db: Optional[Session]) -> Session:
	if db is None:
		raise HTTPException(status_code=503, detail="La base de datos no está configurada.")
	return db


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Optional[Session] = Depends(get_db)):
	db = _require_db(db)
	# OAuth2 password flow calls it "username"; the value is the account email
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		raise HTTPException(status_code=401, detail="Correo o contraseña incorrectos")
	session_id = uuid.uuid4().hex
	# Role is resolved here once and travels in the token
	access_token = create_access_token({
		"sub": user.uid,
		"jti": session_id,
		"email": user.email,
		"name": user.display_name,
		"role": user.role,
	})
	try:
		db.merge(AuthSession(session_id=session_id, uid=user.uid))
		db.commit()
	except Exception:
		db.rollback()
		logger.exception("Could not persist session for %s", user.uid)
		raise HTTPException(status_code=500, detail="No se pudo iniciar la sesión")
	return Token(access_token=access_token)


def _decode(token: str) -> dict:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise credentials_exception
	if payload.get("sub") is None or payload.get("jti") is None:
		raise credentials_exception
	return payload


def get_current_user(token: str = Depends(oauth2_scheme), db: Optional[Session] = Depends(get_db)) -> User:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	payload = _decode(token)
	if db is None:
		raise credentials_exception
	# Check the session still exists so logout revokes the token
	try:
		row = db.get(AuthSession, payload["jti"])
		if not row or row.uid != payload["sub"]:
			raise credentials_exception
		row.last_activity_at = datetime.utcnow()
		db.add(row)
		db.commit()
	except HTTPException:
		raise
	except Exception:
		# On DB errors, fail closed
		logger.exception("Session lookup failed")
		raise credentials_exception
	return User(
		uid=payload["sub"],
		email=payload.get("email"),
		display_name=payload.get("name"),
		role=payload.get("role") or ROLE_USER,
	)


def require_admin(user: User = Depends(get_current_user)) -> User:
	if not user.is_admin:
		raise HTTPException(status_code=403, detail="Acceso restringido a administradores")
	return user


@router.get("/me", response_model=User)
async def me(user: User = Depends(get_current_user)):
	return user


@router.post("/logout", status_code=204)
async def logout(token: str = Depends(oauth2_scheme), db: Optional[Session] = Depends(get_db)):
	db = _require_db(db)
	payload = _decode(token)
	row = db.get(AuthSession, payload["jti"])
	if row is not None:
		db.delete(row)
		db.commit()


class RegisterRequest(BaseModel):
	email: str
	password: str
	display_name: Optional[str] = None


@router.post("/register", status_code=201)
async def register(req: RegisterRequest, db: Optional[Session] = Depends(get_db)):
	db = _require_db(db)
	email = (req.email or "").strip()
	password = req.password or ""
	display_name = (req.display_name or "").strip() or None
	if not email or not password:
		raise HTTPException(status_code=400, detail="email and password are required")
	if "@" not in email:
		raise HTTPException(status_code=400, detail="email is not valid")
	if len(password) < 6:
		raise HTTPException(status_code=400, detail="password must be at least 6 characters")
	existing = db.query(AuthUser).filter(AuthUser.email == email).first()
	if existing:
		raise HTTPException(status_code=409, detail="email already registered")
	uid = uuid.uuid4().hex
	row = AuthUser(uid=uid, email=email, display_name=display_name, password_hash=hash_password(password), role=role_for_email(email))
	db.add(row)
	db.commit()
	logger.info("Registered user %s (%s)", uid, row.role)
	return {"ok": True, "uid": uid}
