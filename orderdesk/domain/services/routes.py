from __future__ import annotations


PUBLIC_PATHS = frozenset(
    {
        "/",
        "/features",
        "/how-it-works",
        "/use-cases",
        "/use-cases/restaurants",
        "/use-cases/hotels",
        "/use-cases/cafes",
        "/use-cases/food-trucks",
        "/pricing",
        "/contact",
        "/get-started",
        "/about",
        "/blog",
        "/login",
        "/register",
        "/verify-otp",
        "/forgot-password",
        "/reset-password",
        "/account-suspended",
        "/auth/login",
        "/auth/register",
        "/auth/verify-otp",
        "/auth/forgot-password",
        "/auth/reset-password",
    }
)

PROTECTED_PREFIXES = (
    "/dashboard",
    "/profile",
    "/organizations",
    "/venues",
    "/menus",
    "/orders",
    "/analytics",
    "/settings",
    "/admin",
)


def normalize_path(path: str | None) -> str:
    value = (path or "/").split("?", 1)[0].split("#", 1)[0].strip()
    if not value.startswith("/"):
        value = f"/{value}"
    if len(value) > 1:
        value = value.rstrip("/")
    return value


def is_public_route(path: str | None) -> bool:
    normalized = normalize_path(path)
    if normalized in PUBLIC_PATHS:
        return True
    if any(normalized.startswith(prefix) for prefix in PROTECTED_PREFIXES):
        return False
    # single-segment paths are organization slugs serving the public menu
    segments = [segment for segment in normalized.split("/") if segment]
    return len(segments) == 1
