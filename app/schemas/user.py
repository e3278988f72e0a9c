from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    full_name: str | None = None
    # self-registration picks the department; the role is always student
    department_id: int | None = Field(default=None, gt=0)


class DepartmentRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class UserRead(BaseModel):
    id: int
    email: EmailStr
    full_name: str | None = None
    role: str
    department_id: int | None = None
    department: DepartmentRef | None = None

    class Config:
        from_attributes = True
