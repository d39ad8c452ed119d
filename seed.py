import random
from decimal import Decimal

from faker import Faker

from extensions import db
from models import LogisticRequest, LogisticRequestService, RoleName, TransportService, User
from utils.aggregation import CargoItem, create_cargo_request
from utils.distances import known_cities
from utils.moderation import complete_request, form_request

fake = Faker("ru_RU")

TRANSPORT_SERVICES = [
    ("Фура", "fura", "Магистральная перевозка полуприцепом до 20 т", "15000.00", 3),
    ("Малотоннажный грузовик", "malotonnazhnyi", "Городская и региональная доставка до 3 т", "5000.00", 2),
    ("Авиаперевозка", "avia", "Срочная доставка авиатранспортом", "30000.00", 1),
    ("Железная дорога", "poezd", "Контейнерные перевозки по железной дороге", "10000.00", 5),
    ("Морская перевозка", "korabl", "Перевозка морским транспортом", "20000.00", 10),
    ("Мультимодальная перевозка", "multimodal", "Комбинированная доставка несколькими видами транспорта", "25000.00", 6),
]

DEMO_PASSWORD = "password123"


def _user(login, role, name=None):
    user = User(
        login=login,
        email=f"{login}@example.com",
        name=name or fake.name(),
        phone=fake.phone_number()[:20],
        role=role,
    )
    user.set_password(DEMO_PASSWORD)
    db.session.add(user)
    return user


def seed_data(num_buyers=5, num_requests=10, reset=False):
    """Fill the database with demo services, users and requests.

    Must run inside an application context.
    """
    if reset:
        db.drop_all()
        db.create_all()
    elif TransportService.query.first():
        print("Database already seeded, skipping.")
        return

    services = []
    for name, delivery_type, description, price, days in TRANSPORT_SERVICES:
        service = TransportService(
            name=name,
            delivery_type=delivery_type,
            description=description,
            price=Decimal(price),
            delivery_days=days,
        )
        db.session.add(service)
        services.append(service)

    _user("admin", RoleName.ADMIN, "Администратор")
    manager = _user("manager", RoleName.MANAGER, "Менеджер")
    buyers = [_user(f"buyer{index}", RoleName.BUYER) for index in range(1, num_buyers + 1)]
    db.session.commit()

    cities = sorted(known_cities())
    print(f"Seeding {num_requests} cargo requests...")

    for _ in range(num_requests):
        buyer = random.choice(buyers)
        origin, destination = random.sample(cities, 2)
        items = [
            CargoItem(
                service_id=service.id,
                from_city=origin.title(),
                to_city=destination.title(),
                length=round(random.uniform(0.5, 6), 2),
                width=round(random.uniform(0.5, 2.5), 2),
                height=round(random.uniform(0.5, 2.5), 2),
                weight=round(random.uniform(50, 15000), 1),
            )
            for service in random.sample(services, random.randint(1, 3))
        ]
        request_id = create_cargo_request(items, buyer.id)

        # Each buyer has one open draft, so submit it before the next one is built
        stored = db.session.get(LogisticRequest, request_id)
        form_request(
            request_id, buyer.id, stored.from_city, stored.to_city,
            stored.weight, stored.length, stored.width, stored.height,
        )
        decision = random.choice([None, "completed", "rejected"])
        if decision:
            complete_request(request_id, decision, manager.id)

    print(
        f"Seeded {TransportService.query.count()} services, {User.query.count()} users, "
        f"{LogisticRequest.query.count()} requests ({LogisticRequestService.query.count()} lines)."
    )


if __name__ == "__main__":
    from app import create_app

    app = create_app()
    with app.app_context():
        confirm = input("This will DROP ALL TABLES. Type 'yes' to continue: ")
        if confirm.lower() != "yes":
            print("Aborted.")
        else:
            seed_data(num_buyers=5, num_requests=15, reset=True)
