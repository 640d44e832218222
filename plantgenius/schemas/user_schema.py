from ..utils.dates import isoformat


def serialize_user(user) -> dict:
    # password_hash never leaves the service
    return {
        "id": user.id,
        "email": user.email,
        "fullName": user.full_name,
        "avatarUrl": user.avatar_url,
        "authProvider": user.auth_provider,
        "createdAt": isoformat(user.created_at),
        "updatedAt": isoformat(user.updated_at),
    }
