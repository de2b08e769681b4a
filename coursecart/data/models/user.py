#coursecart/data/models/user.py
from sqlalchemy import Column, Integer, String

from coursecart.data.database import Base


class UserModel(Base):
    """Tozsamosc z zewnetrznego systemu kont - tu tylko cel kluczy obcych i dane do kolejki admina."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
