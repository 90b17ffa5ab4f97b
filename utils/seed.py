from models import db
from models.admin import Admin
from models.patient import Patient
from security.password import hash_password

DEMO_PATIENTS = [
    {"cpf": "52998224725", "name": "Maria Silva", "email": "maria.silva@example.com", "phone": "(11) 99999-1111"},
    {"cpf": "11144477735", "name": "João Santos", "email": "joao.santos@example.com", "phone": "(11) 99999-2222"},
]

DEMO_ADMIN = {"username": "admin", "email": "admin@example.com", "name": "Administrador", "role": "super_admin"}


def seed_demo_data(password: str) -> int:
    """Insert demo accounts that do not exist yet. Returns how many were created."""
    created = 0
    pw_hash = hash_password(password)

    existing_cpfs = {cpf for (cpf,) in db.session.query(Patient.cpf).all()}
    for row in DEMO_PATIENTS:
        if row["cpf"] not in existing_cpfs:
            db.session.add(Patient(password_hash=pw_hash, **row))
            created += 1

    if not Admin.query.filter_by(username=DEMO_ADMIN["username"]).first():
        db.session.add(Admin(password_hash=pw_hash, **DEMO_ADMIN))
        created += 1

    db.session.commit()
    return created
