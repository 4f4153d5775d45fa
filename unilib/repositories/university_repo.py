from unilib.models.university import University
from unilib.extensions import db


class UniversityRepo:
    @staticmethod
    def get(university_id: int):
        return db.session.get(University, university_id)

    @staticmethod
    def update():
        db.session.commit()
