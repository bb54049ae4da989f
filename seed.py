from werkzeug.security import generate_password_hash
from models import db, User, MenuItem
from app import create_app
from settings_store import get_settings

app = create_app()
with app.app_context():
    db.create_all()
    get_settings()
    if not User.query.filter_by(username="admin").first():
        admin = User(username="admin", password_hash=generate_password_hash("password"), role="admin")
        db.session.add(admin)

    if MenuItem.query.count() == 0:
        items = [
            MenuItem(
                name="Panipuri",
                price=7.99,
                category="Chaat",
                options=["Mild", "Medium", "Spicy", "Extra Sev (+$1)"],
                extra_options={"Extra Sev": 1.0},
            ),
            MenuItem(name="Samosa", price=2.0, category="Chaat", options=[], extra_options={}),
            MenuItem(
                name="Paneer Wrap",
                price=10.5,
                category="Wraps",
                options=["No Onions", "Extra Paneer (+$2)"],
                extra_options={"Extra Paneer": 2.0},
            ),
            MenuItem(name="Mango Lassi", price=4.5, category="Drinks", options=[], extra_options={}),
        ]
        db.session.add_all(items)

    db.session.commit()
    print("Seeded. Username=admin, Password=password")
