"""
Account service: registration, login, profiles and the order history and
payment methods embedded in each user record.

Users are stored whole in the ``users`` collection. Records are read
through the ``User`` schema, so every user has a fully built profile
(address, orderHistory, paymentMethods) whether or not it was written
with one.
"""
import logging
import random
import string
import time
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as SchemaError

from auth import check_password
from errors import AuthError, ConflictError, NotFoundError, PersistenceError, ValidationError
from schemas import Address, Order, PaymentMethod, Profile, User

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("firstName", "lastName", "email", "phone", "bio", "avatar")

DEMO_ACCOUNTS = [
    {"username": "admin", "password": "admin123", "email": "admin@bookstore.com",
     "firstName": "Admin", "lastName": "User", "role": "admin"},
    {"username": "staff", "password": "staff123", "email": "staff@bookstore.com",
     "firstName": "Staff", "lastName": "Member", "role": "staff"},
    {"username": "customer", "password": "customer123", "email": "customer@bookstore.com",
     "firstName": "Jane", "lastName": "Customer", "role": "customer"},
]


def _millis() -> int:
    return int(time.time() * 1000)


def generate_user_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"user_{_millis()}_{suffix}"


def new_user(role: str, username: str, password: str, email: str, first_name: str, last_name: str) -> User:
    return User(
        id=generate_user_id(),
        username=username,
        password=password,
        email=email,
        fullName=f"{first_name} {last_name}",
        firstName=first_name,
        lastName=last_name,
        role=role,
        profile=Profile(firstName=first_name, lastName=last_name, email=email),
    )


class Accounts:
    collection = "users"

    def __init__(self, store):
        self.store = store
        # raw records the schema rejects; written back untouched
        self._unreadable: List[Dict[str, Any]] = []

    # ----------------------- Storage -----------------------
    def _load(self) -> List[User]:
        users = []
        self._unreadable = []
        for raw in self.store.load(self.collection):
            try:
                users.append(User.model_validate(raw))
            except SchemaError as e:
                logger.error("Cannot read user record %s, keeping it as stored: %s",
                             raw.get("id") if isinstance(raw, dict) else None, e)
                self._unreadable.append(raw)
        return users

    def _save(self, users: List[User], failure: str) -> None:
        records = [u.model_dump(mode="json") for u in users] + self._unreadable
        if not self.store.save(self.collection, records):
            raise PersistenceError(failure)

    def _taken(self, users: List[User], field: str) -> set:
        """Usernames or emails in use, unreadable records included."""
        values = {getattr(u, field) for u in users}
        values.update(raw.get(field) for raw in self._unreadable if isinstance(raw, dict))
        return values

    def _find(self, users: List[User], user_id: str) -> User:
        for user in users:
            if user.id == user_id:
                return user
        raise NotFoundError("User not found")

    # ----------------------- Registration & login -----------------------
    def _create(self, role: str, username, password, email, first_name, last_name, failure: str) -> User:
        if not all([username, password, email, first_name, last_name]):
            raise ValidationError("All fields are required")
        if len(username) < 3:
            raise ValidationError("Username must be at least 3 characters")
        if len(password) < 6:
            raise ValidationError("Password must be at least 6 characters")

        users = self._load()
        if username in self._taken(users, "username"):
            logger.info("Registration rejected, username %s taken", username)
            raise ConflictError("Username already exists")
        if email in self._taken(users, "email"):
            logger.info("Registration rejected, email %s taken", email)
            raise ConflictError("Email already exists")

        user = new_user(role, username, password, email, first_name, last_name)
        users.append(user)
        self._save(users, failure)
        logger.info("Created %s account %s", role, username)
        return user

    def register(self, username, password, email, first_name, last_name) -> Dict[str, Any]:
        user = self._create("customer", username, password, email, first_name, last_name,
                            "Error creating account. Please try again.")
        return user.public()

    def add_staff(self, username, password, email, first_name, last_name) -> Dict[str, Any]:
        user = self._create("staff", username, password, email, first_name, last_name,
                            "Error adding staff member. Please try again.")
        return user.public()

    def login(self, username: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        if not username or not password:
            raise ValidationError("Username and password are required")
        for user in self._load():
            if user.username == username and check_password(user.password, password):
                return user.public()
        logger.warning("Failed login for %s", username)
        raise AuthError("Invalid username or password")

    def ensure_demo_accounts(self) -> int:
        """Create the demo admin/staff/customer logins that are missing."""
        users = self._load()
        taken = self._taken(users, "username") | self._taken(users, "email")
        created = 0
        for account in DEMO_ACCOUNTS:
            if account["username"] in taken or account["email"] in taken:
                continue
            users.append(new_user(account["role"], account["username"], account["password"],
                                  account["email"], account["firstName"], account["lastName"]))
            created += 1
        if created:
            self._save(users, "Error creating demo accounts")
        return created

    # ----------------------- Users & profiles -----------------------
    def list_users(self, role: Optional[str] = None) -> List[Dict[str, Any]]:
        return [u.public() for u in self._load() if role is None or u.role == role]

    def get_user(self, user_id: str) -> Dict[str, Any]:
        return self._find(self._load(), user_id).public()

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        return self.get_user(user_id)

    def update_profile(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        users = self._load()
        user = self._find(users, user_id)
        profile = user.profile

        # empty or missing values keep what is already there
        try:
            for name in PROFILE_FIELDS:
                if fields.get(name):
                    setattr(profile, name, fields[name])
            address = fields.get("address")
            if address:
                merged = profile.address.model_dump()
                merged.update({k: v for k, v in address.items() if v and k in Address.model_fields})
                profile.address = Address(**merged)
        except SchemaError as e:
            raise ValidationError.from_schema(e)

        self._save(users, "Failed to save profile")
        return user.public()

    # ----------------------- Orders -----------------------
    def add_order(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        users = self._load()
        user = self._find(users, user_id)

        data = {k: v for k, v in fields.items() if v is not None}
        data.setdefault("orderId", f"ORD-{_millis()}")
        try:
            order = Order(**data)
        except SchemaError as e:
            raise ValidationError.from_schema(e)

        user.profile.orderHistory.append(order)
        self._save(users, "Failed to save order")
        logger.info("Recorded order %s for %s", order.orderId, user.username)
        return order.model_dump(mode="json")

    def list_orders(self, user_id: str) -> Dict[str, Any]:
        user = self._find(self._load(), user_id)
        return {
            "userId": user.id,
            "userName": user.fullName,
            "orders": [o.model_dump(mode="json") for o in user.profile.orderHistory],
        }

    # ----------------------- Payment methods -----------------------
    def add_payment_method(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        users = self._load()
        user = self._find(users, user_id)
        methods = user.profile.paymentMethods

        is_default = bool(fields.get("isDefault"))
        if is_default:
            for pm in methods:
                pm.isDefault = False

        method = PaymentMethod(
            id=self._payment_method_id(methods),
            type=fields.get("type"),
            lastFour=fields.get("lastFour"),
            brand=fields.get("brand"),
            expiryMonth=fields.get("expiryMonth"),
            expiryYear=fields.get("expiryYear"),
            isDefault=is_default,
        )
        methods.append(method)
        self._save(users, "Failed to save payment method")
        return method.model_dump(mode="json")

    @staticmethod
    def _payment_method_id(methods: List[PaymentMethod]) -> str:
        taken = {pm.id for pm in methods}
        stamp = _millis()
        while f"pm_{stamp}" in taken:
            stamp += 1
        return f"pm_{stamp}"

    def list_payment_methods(self, user_id: str) -> Dict[str, Any]:
        user = self._find(self._load(), user_id)
        return {
            "userId": user.id,
            "paymentMethods": [pm.model_dump(mode="json") for pm in user.profile.paymentMethods],
        }

    def delete_payment_method(self, user_id: str, pm_id: str) -> Dict[str, Any]:
        users = self._load()
        user = self._find(users, user_id)
        methods = user.profile.paymentMethods
        index = next((i for i, pm in enumerate(methods) if pm.id == pm_id), None)
        if index is None:
            raise NotFoundError("Payment method not found")
        removed = methods.pop(index)
        self._save(users, "Failed to delete payment method")
        return removed.model_dump(mode="json")
