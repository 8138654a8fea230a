from typing import NewType

T_TransactionHash = str
TransactionHash = NewType("TransactionHash", T_TransactionHash)
