"""Request-scoped dependencies: services, the calling principal and webhook auth."""

from fastapi import Depends, Header, HTTPException
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from delivery.actors import Actor, ActorRole
from delivery.customer.customer import Customer
from delivery.services import Services, build_services
from delivery.webhooks.auth import secret_matches


async def get_services() -> Services:
    return build_services()


async def current_actor(x_user_id: str = Header(default="")) -> Actor:
    """Resolve the authenticated user from the X-User-Id header.

    Authentication itself happens upstream; this only maps the id onto a
    known customer and its role.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        customer = current_domain.repository_for(Customer).get(x_user_id)
    except ObjectNotFoundError:
        raise HTTPException(status_code=401, detail="Unknown user")

    role = ActorRole.ADMIN if customer.is_admin else ActorRole.CUSTOMER
    return Actor(user_id=str(customer.id), role=role)


async def require_admin(actor: Actor = Depends(current_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return actor


async def verify_driver_secret(x_api_secret: str = Header(default="")) -> None:
    """Reject driver-system calls without the shared secret.

    Runs as a dependency so it fires before the body is validated and
    before any storage is touched.
    """
    if not secret_matches(x_api_secret):
        raise HTTPException(status_code=401, detail="Invalid or missing API secret")
