"""Define el modelo de la tabla 'users' usando SQLAlchemy ORM."""

from sqlalchemy import Column, DateTime, Integer, String, func

from .db import Base


class User(Base):
    """
    Modelo SQLAlchemy que representa la tabla 'users' en la base de datos.
    Almacena la identidad y el hash de la contraseña de cada usuario.
    """
    __tablename__ = "users"

    # Clave primaria autoincremental, asignada por la base de datos
    id = Column(Integer, primary_key=True, index=True)

    # Las restricciones UNIQUE son la garantía definitiva contra duplicados
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    # Hash bcrypt; la contraseña en texto plano nunca se almacena
    password_hash = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User id={self.id} username={self.username!r}>"
