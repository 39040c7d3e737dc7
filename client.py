"""
HTTP client for the Bookstore API, covering the calls the web client's
book and user services make.
"""
import logging
from typing import Any, Dict, Optional, Union

import httpx

from cart import Cart

logger = logging.getLogger(__name__)

API_BASE_URL = "http://localhost:3001"


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class BookstoreClient:
    def __init__(self, base_url: Union[str, httpx.Client] = API_BASE_URL, timeout: float = 10.0):
        # a client passed in belongs to the caller and is left open
        self._owns_http = not isinstance(base_url, httpx.Client)
        if self._owns_http:
            self.http = httpx.Client(base_url=base_url, timeout=timeout)
        else:
            self.http = base_url
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None

    def __enter__(self) -> "BookstoreClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self.http.request(method, path, headers=headers, **kwargs)
        if response.is_error:
            try:
                message = response.json().get("error", response.reason_phrase)
            except ValueError:
                message = response.reason_phrase
            logger.error("%s %s failed: %s %s", method, path, response.status_code, message)
            raise ApiError(response.status_code, message)
        return response.json()

    # ----------------------- Books -----------------------
    def get_all_books(self, category: Optional[str] = None, author: Optional[str] = None,
                      search: Optional[str] = None):
        params = {k: v for k, v in {"category": category, "author": author, "search": search}.items() if v}
        return self._request("GET", "/api/books", params=params)

    def get_book(self, book_id: int):
        return self._request("GET", f"/api/books/{book_id}")

    def create_book(self, book: Dict[str, Any]):
        return self._request("POST", "/api/books", json=book)

    def update_book(self, book_id: int, changes: Dict[str, Any]):
        return self._request("PUT", f"/api/books/{book_id}", json=changes)

    def delete_book(self, book_id: int):
        return self._request("DELETE", f"/api/books/{book_id}")

    # ----------------------- Auth -----------------------
    def register(self, username, password, email, first_name, last_name):
        body = {"username": username, "password": password, "email": email,
                "firstName": first_name, "lastName": last_name}
        return self._request("POST", "/api/auth/register", json=body)["user"]

    def login(self, username: str, password: str):
        data = self._request("POST", "/api/auth/login", json={"username": username, "password": password})
        self.token = data.get("token")
        self.user = data["user"]
        return self.user

    def logout(self):
        data = self._request("POST", "/api/auth/logout")
        self.token = None
        self.user = None
        return data

    # ----------------------- Users -----------------------
    def get_profile(self, user_id: str):
        return self._request("GET", f"/api/users/{user_id}/profile")

    def update_profile(self, user_id: str, changes: Dict[str, Any]):
        return self._request("PUT", f"/api/users/{user_id}/profile", json=changes)["user"]

    def get_order_history(self, user_id: str):
        return self._request("GET", f"/api/users/{user_id}/orders")["orders"]

    def add_order(self, user_id: str, order: Dict[str, Any]):
        return self._request("POST", f"/api/users/{user_id}/orders", json=order)["order"]

    def get_payment_methods(self, user_id: str):
        return self._request("GET", f"/api/users/{user_id}/payment-methods")["paymentMethods"]

    def add_payment_method(self, user_id: str, method: Dict[str, Any]):
        return self._request("POST", f"/api/users/{user_id}/payment-methods", json=method)["paymentMethod"]

    def delete_payment_method(self, user_id: str, pm_id: str):
        return self._request("DELETE", f"/api/users/{user_id}/payment-methods/{pm_id}")

    def checkout(self, user_id: str, cart: Cart, shipping_address=None):
        if not len(cart):
            raise ValueError("Your cart is empty")
        order = self.add_order(user_id, cart.to_order(shipping_address))
        cart.clear()
        return order
