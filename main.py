import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

import accounts
import config
import database
from database import get_db
from errors import envelope, register_exception_handlers
from resources import announcements, enquiries, gallery, serialize_document, slides, syllabus
from schemas import (
    AnnouncementCreate,
    AnnouncementUpdate,
    Branch,
    ClassName,
    EnquiryCreate,
    EnquiryStatus,
    EnquiryStatusUpdate,
    GalleryBranch,
    GalleryCategory,
    GalleryCreate,
    GalleryUpdate,
    LoginRequest,
    PasswordReset,
    ReorderRequest,
    SlideCreate,
    SlideMove,
    SlideUpdate,
    StaffCreate,
    StaffUpdate,
    Subject,
    SyllabusCreate,
    SyllabusUpdate,
)
from security import AuthContext, get_current_account, require_owner

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is None:
        logger.warning("DATABASE_URL / DATABASE_NAME not set; skipping startup bootstrap")
    else:
        database.ensure_indexes(database.db)
        accounts.ensure_default_admin(database.db, config.DEFAULT_ADMIN_EMAIL, config.DEFAULT_ADMIN_PASSWORD)
    yield


app = FastAPI(title="Excellence Academy API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


def _toggled(label: str, item: dict) -> str:
    return f"{label} {'activated' if item.get('isActive') else 'deactivated'} successfully."


# ----------------------- Health -----------------------
@app.get("/")
def read_root():
    return envelope(message="Excellence Academy API running")


@app.get("/health")
def health():
    return envelope(message="Server is running", data={"time": datetime.now(timezone.utc).isoformat()})


# ----------------------- Auth Endpoints -----------------------
@app.post("/admin/login")
def login(payload: LoginRequest, db=Depends(get_db)):
    token, account = accounts.login(db, payload.email, payload.password)
    return envelope(
        message="Login successful.",
        data={"token": token, "tokenType": "bearer", "admin": account},
    )


@app.get("/admin/verify")
def verify(current: AuthContext = Depends(get_current_account)):
    return envelope(data={"admin": serialize_document(current.account)})


@app.get("/admin/profile")
def profile(current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    return envelope(data=accounts.get_account(db, current.account_id))


# ----------------------- Enquiries -----------------------
@app.post("/enquiries", status_code=201)
def submit_enquiry(payload: EnquiryCreate, db=Depends(get_db)):
    enquiry = enquiries.create(db, payload, status="pending")
    return envelope(
        message="Enquiry submitted successfully. We will contact you within 24 hours.",
        data={
            "enquiryId": enquiry["enquiryId"],
            "studentName": enquiry["studentName"],
            "branch": enquiry["branch"],
        },
    )


@app.get("/enquiries")
def list_enquiries(
    branch: Optional[Branch] = None,
    status: Optional[EnquiryStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current: AuthContext = Depends(get_current_account),
    db=Depends(get_db),
):
    return envelope(data=enquiries.list_all(db, page, limit, branch=branch, status=status))


@app.get("/enquiries/stats")
def enquiry_stats(current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    return envelope(data=enquiries.stats(db))


@app.get("/enquiries/{enquiry_id}")
def get_enquiry(enquiry_id: str, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    return envelope(data=enquiries.get(db, enquiry_id))


@app.patch("/enquiries/{enquiry_id}/status")
def update_enquiry_status(
    enquiry_id: str,
    payload: EnquiryStatusUpdate,
    current: AuthContext = Depends(get_current_account),
    db=Depends(get_db),
):
    enquiry = enquiries.update(db, enquiry_id, payload)
    return envelope(message="Enquiry status updated successfully.", data=enquiry)


@app.delete("/enquiries/{enquiry_id}")
def delete_enquiry(enquiry_id: str, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    enquiries.delete(db, enquiry_id)
    return envelope(message="Enquiry deleted successfully.")


# ----------------------- Gallery -----------------------
@app.get("/gallery")
def list_gallery(
    category: Optional[GalleryCategory] = None,
    branch: Optional[GalleryBranch] = None,
    db=Depends(get_db),
):
    if branch == "All":
        branch = None
    return envelope(data=gallery.list_public(db, category=category, branch=branch))


@app.get("/gallery/{image_id}")
def get_image(image_id: str, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    return envelope(data=gallery.get(db, image_id))


@app.post("/gallery", status_code=201)
def upload_image(payload: GalleryCreate, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    return envelope(message="Image uploaded successfully.", data=gallery.create(db, payload, current))


@app.patch("/gallery/{image_id}")
def update_image(
    image_id: str,
    payload: GalleryUpdate,
    current: AuthContext = Depends(get_current_account),
    db=Depends(get_db),
):
    return envelope(message="Image updated successfully.", data=gallery.update(db, image_id, payload))


@app.delete("/gallery/{image_id}")
def delete_image(image_id: str, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    gallery.delete(db, image_id)
    return envelope(message="Image deleted successfully.")


# ----------------------- Announcements -----------------------
@app.get("/announcements/active")
def active_announcements(db=Depends(get_db)):
    return envelope(data=announcements.list_public(db))


@app.get("/announcements")
def list_announcements(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current: AuthContext = Depends(get_current_account),
    db=Depends(get_db),
):
    return envelope(data=announcements.list_all(db, page, limit))


@app.get("/announcements/{announcement_id}")
def get_announcement(announcement_id: str, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    return envelope(data=announcements.get(db, announcement_id))


@app.post("/announcements", status_code=201)
def create_announcement(
    payload: AnnouncementCreate,
    current: AuthContext = Depends(get_current_account),
    db=Depends(get_db),
):
    announcement = announcements.create(db, payload, current)
    return envelope(message="Announcement created successfully.", data=announcement)


@app.patch("/announcements/{announcement_id}")
def update_announcement(
    announcement_id: str,
    payload: AnnouncementUpdate,
    current: AuthContext = Depends(get_current_account),
    db=Depends(get_db),
):
    announcement = announcements.update(db, announcement_id, payload)
    return envelope(message="Announcement updated successfully.", data=announcement)


@app.delete("/announcements/{announcement_id}")
def delete_announcement(announcement_id: str, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    announcements.delete(db, announcement_id)
    return envelope(message="Announcement deleted successfully.")


@app.patch("/announcements/{announcement_id}/toggle")
def toggle_announcement(announcement_id: str, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    announcement = announcements.toggle(db, announcement_id)
    return envelope(message=_toggled("Announcement", announcement), data=announcement)


# ----------------------- Syllabus -----------------------
@app.get("/syllabus/active")
def active_syllabus(
    class_name: Optional[ClassName] = Query(None, alias="class"),
    subject: Optional[Subject] = None,
    db=Depends(get_db),
):
    return envelope(data=syllabus.list_public(db, class_name=class_name, subject=subject))


@app.get("/syllabus/class/{class_name}")
def syllabus_by_class(class_name: ClassName, db=Depends(get_db)):
    return envelope(data=syllabus.list_public(db, class_name=class_name))


@app.get("/syllabus")
def list_syllabus(
    class_name: Optional[ClassName] = Query(None, alias="class"),
    subject: Optional[Subject] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    current: AuthContext = Depends(get_current_account),
    db=Depends(get_db),
):
    return envelope(data=syllabus.list_all(db, page, limit, class_name=class_name, subject=subject))


@app.get("/syllabus/{syllabus_id}")
def get_syllabus(syllabus_id: str, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    return envelope(data=syllabus.get(db, syllabus_id))


@app.post("/syllabus", status_code=201)
def create_syllabus(payload: SyllabusCreate, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    return envelope(message="Syllabus uploaded successfully.", data=syllabus.create(db, payload, current))


@app.patch("/syllabus/{syllabus_id}")
def update_syllabus(
    syllabus_id: str,
    payload: SyllabusUpdate,
    current: AuthContext = Depends(get_current_account),
    db=Depends(get_db),
):
    return envelope(message="Syllabus updated successfully.", data=syllabus.update(db, syllabus_id, payload))


@app.delete("/syllabus/{syllabus_id}")
def delete_syllabus(syllabus_id: str, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    syllabus.delete(db, syllabus_id)
    return envelope(message="Syllabus deleted successfully.")


# ----------------------- Slider -----------------------
@app.get("/slider/active")
def active_slides(db=Depends(get_db)):
    return envelope(data=slides.list_public(db))


@app.get("/slider")
def list_slides(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current: AuthContext = Depends(get_current_account),
    db=Depends(get_db),
):
    return envelope(data=slides.list_all(db, page, limit))


@app.post("/slider/reorder")
def reorder_slides(payload: ReorderRequest, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    slides.reorder(db, [(item.id, item.order) for item in payload.slides])
    return envelope(message="Slides reordered successfully.")


@app.get("/slider/{slide_id}")
def get_slide(slide_id: str, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    return envelope(data=slides.get(db, slide_id))


@app.post("/slider", status_code=201)
def create_slide(payload: SlideCreate, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    return envelope(message="Slide created successfully.", data=slides.create(db, payload, current))


@app.patch("/slider/{slide_id}")
def update_slide(
    slide_id: str,
    payload: SlideUpdate,
    current: AuthContext = Depends(get_current_account),
    db=Depends(get_db),
):
    return envelope(message="Slide updated successfully.", data=slides.update(db, slide_id, payload))


@app.delete("/slider/{slide_id}")
def delete_slide(slide_id: str, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    slides.delete(db, slide_id)
    return envelope(message="Slide deleted successfully.")


@app.post("/slider/{slide_id}/move")
def move_slide(
    slide_id: str,
    payload: SlideMove,
    current: AuthContext = Depends(get_current_account),
    db=Depends(get_db),
):
    return envelope(message="Slide moved successfully.", data=slides.move(db, slide_id, payload.direction))


@app.patch("/slider/{slide_id}/toggle")
def toggle_slide(slide_id: str, current: AuthContext = Depends(get_current_account), db=Depends(get_db)):
    slide = slides.toggle(db, slide_id)
    return envelope(message=_toggled("Slide", slide), data=slide)


# ----------------------- Staff (owner only) -----------------------
@app.get("/staff")
def list_staff(current: AuthContext = Depends(require_owner), db=Depends(get_db)):
    return envelope(data=accounts.list_staff(db))


@app.get("/staff/{account_id}")
def get_staff(account_id: str, current: AuthContext = Depends(require_owner), db=Depends(get_db)):
    return envelope(data=accounts.get_account(db, account_id))


@app.post("/staff", status_code=201)
def create_staff(payload: StaffCreate, current: AuthContext = Depends(require_owner), db=Depends(get_db)):
    account = accounts.create_staff(db, payload, current)
    return envelope(message="Staff member created successfully.", data=account)


@app.patch("/staff/{account_id}")
def update_staff(
    account_id: str,
    payload: StaffUpdate,
    current: AuthContext = Depends(require_owner),
    db=Depends(get_db),
):
    account = accounts.update_staff(db, account_id, payload, current)
    return envelope(message="Staff member updated successfully.", data=account)


@app.delete("/staff/{account_id}")
def delete_staff(account_id: str, current: AuthContext = Depends(require_owner), db=Depends(get_db)):
    accounts.delete_staff(db, account_id, current)
    return envelope(message="Staff member deleted successfully.")


@app.post("/staff/{account_id}/reset-password")
def reset_staff_password(
    account_id: str,
    payload: PasswordReset,
    current: AuthContext = Depends(require_owner),
    db=Depends(get_db),
):
    accounts.reset_password(db, account_id, payload.password, current)
    return envelope(message="Password reset successfully.")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
