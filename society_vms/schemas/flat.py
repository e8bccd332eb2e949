from pydantic import BaseModel


class FlatOut(BaseModel):
    id: int
    wing: str
    flat_number: int
    flat_code: str

    class Config:
        from_attributes = True
