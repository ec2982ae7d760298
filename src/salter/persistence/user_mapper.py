from ..users.role import Role
from ..users.user import User
from .mapper import Mapper
from .user_dto import UserDto


class UserMapper(Mapper[User, UserDto]):
    dto_type = UserDto

    def to_dto(self, model: User) -> UserDto:
        return UserDto(
            id=str(model.id),
            username=model.username,
            password_hash=model.password_hash,
            salt=model.salt,
            is_default=model.is_default,
            role_name=model.role.role_name,
        )

    def _map_to_model(self, dto: UserDto) -> User:
        if dto.is_default:
            return User.create_default(dto.uuid, dto.password_hash, dto.salt)

        return User(
            id=dto.uuid,
            username=dto.username,
            password_hash=dto.password_hash,
            salt=dto.salt,
            role=Role.from_name(dto.role_name),
        )
