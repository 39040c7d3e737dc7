import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, ConfigDict, EmailStr
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from accounts import Accounts
from auth import create_token, decode_token, require_roles, security
from catalog import Catalog
from database import db
from errors import BookstoreError
from schemas import OrderItem, OrderStatus

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("bookstore")

app = FastAPI(title="Bookstore API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ----------------------- Utils -----------------------
def get_store():
    return db


def get_catalog(store=Depends(get_store)) -> Catalog:
    return Catalog(store)


def get_accounts(store=Depends(get_store)) -> Accounts:
    return Accounts(store)


staff_only = require_roles("admin", "staff")
admin_only = require_roles("admin")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - start) * 1000
    logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed)
    return response


@app.exception_handler(BookstoreError)
async def bookstore_error_handler(request: Request, exc: BookstoreError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    err = exc.errors()[0]
    if err["loc"][0] == "path":
        # an id that cannot be parsed names no record
        message = "Book not found" if err["loc"][-1] == "book_id" else "Endpoint not found"
        return JSONResponse(status_code=404, content={"error": message})
    field = ".".join(str(p) for p in err["loc"] if p != "body")
    message = f"Invalid {field}: {err['msg']}" if field else err["msg"]
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Endpoint not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Something went wrong!"})


# ----------------------- Models -----------------------
class BookBody(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    title: Optional[str] = None
    author: Optional[str] = None
    isbn: Optional[str] = None
    price: Optional[Union[float, str]] = None
    category: Optional[str] = None
    description: Optional[str] = None
    publicationYear: Optional[Union[int, str]] = None
    publisher: Optional[str] = None
    stock: Optional[Union[int, str]] = None
    coverImage: Optional[str] = None


class SignupBody(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None
    email: Optional[EmailStr] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None


class LoginBody(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdateBody(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    address: Optional[Dict[str, Optional[str]]] = None


class OrderCreateBody(BaseModel):
    orderId: Optional[str] = None
    orderDate: Optional[str] = None
    total: Optional[float] = None
    items: List[OrderItem] = []
    status: Optional[OrderStatus] = None
    shippingAddress: Optional[Union[Dict[str, Any], str]] = None


class PaymentMethodBody(BaseModel):
    type: Optional[str] = None
    lastFour: Optional[str] = None
    brand: Optional[str] = None
    expiryMonth: Optional[Union[int, str]] = None
    expiryYear: Optional[Union[int, str]] = None
    isDefault: bool = False


class SeedRequest(BaseModel):
    force: bool = False


# ----------------------- Health -----------------------
@app.get("/")
def root():
    return {
        "message": "Welcome to the Bookstore API",
        "version": app.version,
        "endpoints": {
            "books": "/api/books",
            "auth": "/api/auth",
            "users": "/api/users",
            "documentation": "/docs",
        },
    }


@app.get("/health")
def health():
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}


# ----------------------- Books -----------------------
@app.get("/api/books")
def list_books(
    category: Optional[str] = None,
    author: Optional[str] = None,
    search: Optional[str] = None,
    catalog: Catalog = Depends(get_catalog),
):
    return catalog.list_books(category=category, author=author, search=search)


@app.get("/api/books/stocktake")
def stocktake(threshold: int = config.LOW_STOCK_THRESHOLD, catalog: Catalog = Depends(get_catalog),
              _=Depends(staff_only)):
    return catalog.stock_report(threshold)


@app.get("/api/books/{book_id}")
def get_book(book_id: int, catalog: Catalog = Depends(get_catalog)):
    return catalog.get_book(book_id)


@app.post("/api/books", status_code=201)
def create_book(body: BookBody, catalog: Catalog = Depends(get_catalog), _=Depends(staff_only)):
    return catalog.create_book(body.model_dump(exclude_unset=True))


@app.put("/api/books/{book_id}")
def update_book(book_id: int, body: BookBody, catalog: Catalog = Depends(get_catalog),
                _=Depends(staff_only)):
    return catalog.update_book(book_id, body.model_dump(exclude_unset=True))


@app.delete("/api/books/{book_id}")
def delete_book(book_id: int, catalog: Catalog = Depends(get_catalog), _=Depends(staff_only)):
    catalog.delete_book(book_id)
    return {"message": "Book deleted successfully"}


# ----------------------- Auth -----------------------
@app.post("/api/auth/register", status_code=201)
def register(body: SignupBody, accounts: Accounts = Depends(get_accounts)):
    user = accounts.register(body.username, body.password, body.email, body.firstName, body.lastName)
    return {"success": True, "user": user, "message": "Registration successful! Welcome to Bookstore!"}


@app.post("/api/auth/login")
def login(body: LoginBody, accounts: Accounts = Depends(get_accounts)):
    user = accounts.login(body.username, body.password)
    return {
        "success": True,
        "user": user,
        "token": create_token(user),
        "message": f"Welcome, {user['fullName']}!",
    }


@app.post("/api/auth/add-staff", status_code=201)
def add_staff(body: SignupBody, accounts: Accounts = Depends(get_accounts), _=Depends(admin_only)):
    user = accounts.add_staff(body.username, body.password, body.email, body.firstName, body.lastName)
    return {
        "success": True,
        "user": user,
        "message": f'Staff member "{body.firstName} {body.lastName}" has been added successfully!',
    }


@app.post("/api/auth/logout")
def logout():
    # tokens are stateless; the client drops its copy
    return {"success": True, "message": "Logged out successfully"}


@app.get("/api/auth/me")
def current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    accounts: Accounts = Depends(get_accounts),
):
    if credentials is None:
        return {"message": "Use login endpoint to authenticate"}
    payload = decode_token(credentials.credentials)
    return accounts.get_user(payload["id"])


# ----------------------- Users -----------------------
@app.get("/api/users")
def list_users(role: Optional[str] = None, accounts: Accounts = Depends(get_accounts),
               _=Depends(admin_only)):
    return accounts.list_users(role)


@app.get("/api/users/{user_id}")
def get_user(user_id: str, accounts: Accounts = Depends(get_accounts)):
    return accounts.get_user(user_id)


@app.get("/api/users/{user_id}/profile")
def get_profile(user_id: str, accounts: Accounts = Depends(get_accounts)):
    return accounts.get_profile(user_id)


@app.put("/api/users/{user_id}/profile")
def update_profile(user_id: str, body: ProfileUpdateBody, accounts: Accounts = Depends(get_accounts)):
    user = accounts.update_profile(user_id, body.model_dump(exclude_none=True))
    return {"success": True, "message": "Profile updated successfully", "user": user}


@app.get("/api/users/{user_id}/orders")
def list_orders(user_id: str, accounts: Accounts = Depends(get_accounts)):
    return accounts.list_orders(user_id)


@app.post("/api/users/{user_id}/orders")
def add_order(user_id: str, body: OrderCreateBody, accounts: Accounts = Depends(get_accounts)):
    order = accounts.add_order(user_id, body.model_dump(exclude_none=True))
    return {"success": True, "message": "Order added successfully", "order": order}


@app.get("/api/users/{user_id}/payment-methods")
def list_payment_methods(user_id: str, accounts: Accounts = Depends(get_accounts)):
    return accounts.list_payment_methods(user_id)


@app.post("/api/users/{user_id}/payment-methods")
def add_payment_method(user_id: str, body: PaymentMethodBody, accounts: Accounts = Depends(get_accounts)):
    method = accounts.add_payment_method(user_id, body.model_dump())
    return {"success": True, "message": "Payment method saved successfully", "paymentMethod": method}


@app.delete("/api/users/{user_id}/payment-methods/{pm_id}")
def delete_payment_method(user_id: str, pm_id: str, accounts: Accounts = Depends(get_accounts)):
    accounts.delete_payment_method(user_id, pm_id)
    return {"success": True, "message": "Payment method deleted successfully"}


# ----------------------- Seed Demo Data -----------------------
DEMO_BOOKS = [
    {
        "title": "The Great Gatsby",
        "author": "F. Scott Fitzgerald",
        "isbn": "978-0743273565",
        "price": 10.99,
        "category": "Fiction",
        "description": "A portrait of the Jazz Age and the elusive American dream.",
        "publicationYear": 1925,
        "publisher": "Scribner",
        "stock": 25,
        "coverImage": "https://covers.openlibrary.org/b/isbn/9780743273565-L.jpg",
    },
    {
        "title": "To Kill a Mockingbird",
        "author": "Harper Lee",
        "isbn": "978-0061120084",
        "price": 12.99,
        "category": "Fiction",
        "description": "A story of racial injustice and childhood innocence in the Deep South.",
        "publicationYear": 1960,
        "publisher": "Harper Perennial",
        "stock": 18,
        "coverImage": "https://covers.openlibrary.org/b/isbn/9780061120084-L.jpg",
    },
    {
        "title": "1984",
        "author": "George Orwell",
        "isbn": "978-0451524935",
        "price": 9.99,
        "category": "Science Fiction",
        "description": "A dystopian tale of surveillance and totalitarian control.",
        "publicationYear": 1949,
        "publisher": "Signet Classic",
        "stock": 30,
        "coverImage": "https://covers.openlibrary.org/b/isbn/9780451524935-L.jpg",
    },
    {
        "title": "Dune",
        "author": "Frank Herbert",
        "isbn": "978-0441172719",
        "price": 14.99,
        "category": "Science Fiction",
        "description": "Politics, religion and ecology on the desert planet Arrakis.",
        "publicationYear": 1965,
        "publisher": "Ace",
        "stock": 7,
        "coverImage": "https://covers.openlibrary.org/b/isbn/9780441172719-L.jpg",
    },
    {
        "title": "Sapiens",
        "author": "Yuval Noah Harari",
        "isbn": "978-0062316097",
        "price": 18.99,
        "category": "Non-Fiction",
        "description": "A brief history of humankind.",
        "publicationYear": 2011,
        "publisher": "Harper",
        "stock": 12,
        "coverImage": "https://covers.openlibrary.org/b/isbn/9780062316097-L.jpg",
    },
    {
        "title": "The Hobbit",
        "author": "J.R.R. Tolkien",
        "isbn": "978-0547928227",
        "price": 11.49,
        "category": "Fantasy",
        "description": "Bilbo Baggins is swept into a quest for dragon-guarded treasure.",
        "publicationYear": 1937,
        "publisher": "Mariner Books",
        "stock": 0,
        "coverImage": "https://covers.openlibrary.org/b/isbn/9780547928227-L.jpg",
    },
]


@app.post("/api/seed")
def seed(payload: Optional[SeedRequest] = None, catalog: Catalog = Depends(get_catalog),
         accounts: Accounts = Depends(get_accounts)):
    force = payload.force if payload else False
    seeded = False
    if force:
        catalog.reset()
    if not catalog.list_books():
        for book in DEMO_BOOKS:
            catalog.create_book(book)
        seeded = True
    created_users = accounts.ensure_demo_accounts()
    return {
        "seeded": seeded or created_users > 0,
        "books": len(catalog.list_books()),
        "users": created_users,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
