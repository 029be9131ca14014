from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

class Player(Base):
    __tablename__ = 'players'
    
    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False, unique=True)  # Normalized name, natural key
    
    __table_args__ = {'sqlite_autoincrement': True}
    
    def __repr__(self):
        return f"<Player(id={self.id}, name='{self.name}')>"

class Session(Base):
    """One real-world gathering, identified by date and location."""
    __tablename__ = 'sessions'
    
    id = Column(Integer, primary_key=True)
    date = Column(String(10), nullable=False)  # ISO yyyy-mm-dd
    location = Column(String(200), nullable=False)
    
    # Relationships
    rounds = relationship("Round", back_populates="session", order_by="Round.round_number")
    
    __table_args__ = (
        UniqueConstraint('date', 'location', name='uq_session_date_location'),
        {'sqlite_autoincrement': True},
    )
    
    def __repr__(self):
        return f"<Session(id={self.id}, date='{self.date}', location='{self.location}')>"

class Round(Base):
    __tablename__ = 'rounds'
    
    id = Column(Integer, primary_key=True)
    session_id = Column(Integer, ForeignKey('sessions.id'), nullable=False, index=True)
    round_number = Column(Integer, nullable=False)  # 1-based, positional within the session
    
    # Relationships
    session = relationship("Session", back_populates="rounds")
    # One game per round for now; kept separate to allow multi-game rounds
    games = relationship("Game", back_populates="round")
    
    __table_args__ = (
        UniqueConstraint('session_id', 'round_number', name='uq_round_session_number'),
        CheckConstraint('round_number >= 1', name='ck_round_number_positive'),
        {'sqlite_autoincrement': True},
    )
    
    def __repr__(self):
        return f"<Round(id={self.id}, session_id={self.session_id}, round_number={self.round_number})>"

class Game(Base):
    __tablename__ = 'games'
    
    id = Column(Integer, primary_key=True)
    round_id = Column(Integer, ForeignKey('rounds.id'), nullable=False, index=True)
    player1_id = Column(Integer, ForeignKey('players.id'), nullable=False, index=True)
    player2_id = Column(Integer, ForeignKey('players.id'), nullable=False, index=True)
    player1_score = Column(Integer, nullable=False)
    player2_score = Column(Integer, nullable=False)
    
    # Metadata
    created_at = Column(DateTime, default=func.now())
    
    # Relationships
    round = relationship("Round", back_populates="games")
    player1 = relationship("Player", foreign_keys=[player1_id])
    player2 = relationship("Player", foreign_keys=[player2_id])
    
    __table_args__ = (
        CheckConstraint('player1_id != player2_id', name='ck_game_distinct_players'),
        {'sqlite_autoincrement': True},
    )
    
    def __repr__(self):
        return (
            f"<Game(id={self.id}, round_id={self.round_id}, "
            f"{self.player1_id}:{self.player1_score} vs {self.player2_id}:{self.player2_score})>"
        )
