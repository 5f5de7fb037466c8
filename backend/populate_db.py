import os
import random
import sys

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from database import SessionLocal, init_db
from models.users import User, ROLE_ADMIN
from models.size import Size, SizeCategory, SizeSystem
from models.product import Product
from utils.hashing import get_password_hash

# Configuration
ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@storefront.dev")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin123")
EU_SHOE_SIZES = [str(v) for v in range(36, 46)]
BRANDS = ["Nike", "Adidas", "Puma", "New Balance", "Converse"]
MODELS = ["Runner", "Classic", "Court", "Trail", "Street"]
LIMIT_PRODUCTS = 20
# End Configuration

def seed():
    """Creates an admin account, an EU size chart and a handful of demo products."""
    init_db()
    session = SessionLocal()
    try:
        if not session.query(User).filter(User.email == ADMIN_EMAIL).first():
            session.add(User(
                name="Administrator", email=ADMIN_EMAIL, password_hash=get_password_hash(ADMIN_PASSWORD),
                role=ROLE_ADMIN, is_verified=True,
            ))
            print(f"Admin account created: {ADMIN_EMAIL}")

        sizes = session.query(Size).filter(Size.system == SizeSystem.EU).all()
        if not sizes:
            sizes = [
                Size(category=category, system=SizeSystem.EU, value=value)
                for category in (SizeCategory.MEN, SizeCategory.WOMEN)
                for value in EU_SHOE_SIZES
            ]
            session.add_all(sizes)
            session.flush()
            print(f"Inserted {len(sizes)} sizes")

        if session.query(Product).count() == 0:
            for i in range(LIMIT_PRODUCTS):
                brand = random.choice(BRANDS)
                on_sale = random.random() < 0.3
                session.add(Product(
                    name=f"{brand} {random.choice(MODELS)} {i + 1:02d}",
                    description=f"{brand} sneaker, demo item.",
                    brand=brand,
                    price=random.randrange(300000, 3000000, 10000),
                    stock=random.randint(0, 50),
                    is_on_sale=on_sale,
                    discount=random.choice([10, 15, 20, 30]) if on_sale else 0,
                    image_url=f"https://picsum.photos/seed/shoe{i}/400/400",
                    sizes=random.sample(sizes, k=min(6, len(sizes))),
                ))
            print(f"Inserted {LIMIT_PRODUCTS} products")

        session.commit()
    finally:
        session.close()

if __name__ == "__main__":
    seed()
