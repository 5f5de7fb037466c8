import os
import tempfile

# Settings are read at import time; point them away from the working copy first
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="storefront-uploads-"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import Base, get_db
from main import app
from models.users import User, ROLE_ADMIN, ROLE_CUSTOMER
from models.size import Size, SizeCategory, SizeSystem
from models.product import Product
from utils.hashing import get_password_hash
from utils.image_store import ImageStore, get_image_store
from utils.tokenJWT import create_access_token


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(tmp_path):
    return ImageStore(str(tmp_path / "uploads"), "/uploads")


@pytest.fixture
def client(session_factory, store):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_image_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(email="buyer@mail.com", role=ROLE_CUSTOMER, verified=True, password="secret123", name="Buyer"):
        user = User(
            name=name, email=email, password_hash=get_password_hash(password),
            role=role, is_verified=verified,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def other_customer(make_user):
    return make_user(email="other@mail.com", name="Other")


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@mail.com", role=ROLE_ADMIN, name="Admin")


def headers_for(user):
    token = create_access_token({"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return headers_for


@pytest.fixture
def auth(customer):
    return headers_for(customer)


@pytest.fixture
def admin_auth(admin):
    return headers_for(admin)


@pytest.fixture
def sizes(db):
    eu42 = Size(category=SizeCategory.MEN, system=SizeSystem.EU, value="42")
    eu43 = Size(category=SizeCategory.MEN, system=SizeSystem.EU, value="43")
    kids = Size(category=SizeCategory.KIDS, system=SizeSystem.US, value="5")
    db.add_all([eu42, eu43, kids])
    db.commit()
    return eu42, eu43, kids


@pytest.fixture
def make_product(db, sizes):
    eu42, eu43, _ = sizes

    def _make(name="Runner", price=1000000, stock=10, is_on_sale=False, discount=0, product_sizes=None):
        product = Product(
            name=name, price=price, stock=stock, is_on_sale=is_on_sale, discount=discount,
            image_url=f"/uploads/{name.lower()}.png",
            sizes=list(product_sizes) if product_sizes is not None else [eu42, eu43],
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make
