from sqlalchemy import Column, BigInteger, Integer, LargeBinary
from sqlalchemy.orm import declarative_base

Base = declarative_base()

class BlockChain(Base):
    __tablename__ = 'block_chain'

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    hash = Column(LargeBinary(32), nullable=False)
    data = Column(LargeBinary, nullable=False)
    time = Column(BigInteger, nullable=False)  # Unix seconds
    tx = Column(Integer, nullable=False, default=0)

class LogTransaction(Base):
    __tablename__ = 'log_transactions'

    hash = Column(LargeBinary(32), primary_key=True)
    block = Column(BigInteger, nullable=False)
    timestamp = Column(BigInteger)
