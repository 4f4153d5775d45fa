def _iso(value):
    return value.isoformat() if value is not None else None


def loan_json(loan, book=None) -> dict:
    data = {
        "id": loan.id,
        "bookItemRef": loan.book_id,
        "studentRef": loan.student_id,
        "dueDate": _iso(loan.due_date),
        "returnDate": _iso(loan.return_date),
        "createdAt": _iso(loan.created_at),
    }
    if book is not None:
        data["book"] = {
            "id": book.id,
            "title": book.title,
            "ISBN": book.isbn,
            "author": book.author,
            "coverImageUrl": book.cover_image_url,
        }
    return data


def book_json(book, availability=None) -> dict:
    data = {
        "id": book.id,
        "title": book.title,
        "author": book.author,
        "ISBN": book.isbn,
        "coverImageUrl": book.cover_image_url,
        "description": book.description,
        "totalCopies": int(book.total_copies or 0),
        "borrowCount": int(book.borrow_count or 0),
        "genres": list(book.genres or []),
        "rating": book.rating,
    }
    if availability is not None:
        data.update({
            "availableCopies": availability.available_copies,
            "nextAvailableInDays": availability.next_available_in_days,
            "soonestDueDate": _iso(availability.soonest_due_date),
        })
    return data


def prediction_json(p) -> dict:
    return {
        "bookId": p.book_id,
        "title": p.title,
        "ISBN": p.isbn,
        "minDueDate": _iso(p.min_due_date),
    }


def notification_json(n) -> dict:
    return {
        "id": n.id,
        "type": n.type,
        "createdAt": _iso(n.created_at),
        "message": n.message,
        "unread": bool(n.unread),
        "userEmail": n.user.email if n.user else None,
        "userName": n.user.name if n.user else None,
        "bookTitle": n.book.title if n.book else None,
        "bookISBN": n.book.isbn if n.book else None,
    }


def settings_json(uni) -> dict:
    return {
        "name": uni.name,
        "domain": uni.domain,
        "loanDaysDefault": uni.loan_days_default,
        "finePerDay": float(uni.fine_per_day),
    }
