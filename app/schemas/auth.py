from pydantic import BaseModel, ConfigDict

USER_ROLE = "user"
ADMIN_ROLE = "admin"


class Actor(BaseModel):
    """The authenticated caller a service operation runs on behalf of."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: str = USER_ROLE

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def owns(self, booking) -> bool:
        return booking.user_id == self.user_id
