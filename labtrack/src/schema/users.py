from enum import Enum


class UserTypeEnum(str, Enum):
    student = "student"
    staff = "staff"
    admin = "admin"

StaffRoleList = [UserTypeEnum.staff, UserTypeEnum.admin]
