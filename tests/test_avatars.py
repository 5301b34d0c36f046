import io

import pytest
from fastapi import HTTPException
from PIL import Image

from app.config import settings
from app.modules.avatars.service import (
    AvatarService, generate_avatar_filename, resize_image_to_square,
    storage_error_message, validate_image_file,
)
from conftest import OTHER_USER_ID, USER_ID, make_profile


def _image_bytes(size=(400, 300), fmt="PNG", color=(200, 30, 30)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def test_validate_image_file():
    assert validate_image_file("me.png", "image/png", 1024) is None
    assert validate_image_file("me.jpg", "image/jpeg", settings.avatar_max_bytes + 1) == "File size must be less than 5MB"
    assert validate_image_file("me.gif", "image/gif", 10) == "Only JPEG and PNG images are allowed"
    assert validate_image_file("evil.exe.png", "image/png", 10) == "Invalid file name"


def test_generate_avatar_filename():
    name = generate_avatar_filename(USER_ID, ".PNG")
    prefix, _, rest = name.partition("_")
    assert prefix == USER_ID
    stamp, ext = rest.split(".")
    assert stamp.isdigit()
    assert ext == "png"


def test_resize_crops_to_square():
    out = resize_image_to_square(_image_bytes((400, 300)), 200, "png")
    image = Image.open(io.BytesIO(out))
    assert image.size == (200, 200)
    assert image.format == "PNG"


def test_resize_jpeg_converts_alpha():
    buffer = io.BytesIO()
    Image.new("RGBA", (50, 80), (0, 0, 0, 0)).save(buffer, format="PNG")
    out = resize_image_to_square(buffer.getvalue(), 32, "jpg")
    image = Image.open(io.BytesIO(out))
    assert image.format == "JPEG"
    assert image.size == (32, 32)


def test_resize_rejects_non_image():
    with pytest.raises(HTTPException) as exc:
        resize_image_to_square(b"not an image", 200)
    assert exc.value.status_code == 400


@pytest.mark.parametrize("message,expected", [
    ("Bucket not found", "Storage is not configured. Please contact support."),
    ("Payload too large", "Image is too large. Please choose a smaller file."),
    ("invalid mime type", "Invalid image format. Please use JPEG or PNG."),
    ("JWT expired", "Authentication error. Please sign in again."),
    ("new row violates row-level security policy", "You do not have permission to upload this file."),
    ("boom", "Failed to upload avatar. Please try again."),
])
def test_storage_error_message(message, expected):
    assert storage_error_message(Exception(message)) == expected


def test_delete_old_avatars_only_touches_own_files(fake_db):
    bucket = fake_db.storage.from_(settings.avatar_bucket)
    bucket.files = {
        f"{USER_ID}_1.jpg": b"a",
        f"{USER_ID}_2.png": b"b",
        f"{USER_ID}_notes.txt": b"c",
        f"{OTHER_USER_ID}_1.jpg": b"d",
    }
    removed = AvatarService(fake_db, fake_db).delete_old_avatars(USER_ID)
    assert removed == 2
    assert set(bucket.files) == {f"{USER_ID}_notes.txt", f"{OTHER_USER_ID}_1.jpg"}


def test_delete_old_avatars_swallows_storage_errors(fake_db):
    service = AvatarService(fake_db, fake_db)

    def broken_list(*args, **kwargs):
        raise Exception("storage down")

    service.bucket.list = broken_list
    assert service.delete_old_avatars(USER_ID) == 0


def test_upload_avatar_endpoint(client, fake_db):
    fake_db.seed("profiles", make_profile())
    bucket = fake_db.storage.from_(settings.avatar_bucket)
    bucket.files = {f"{USER_ID}_1.jpg": b"old"}

    resp = client.post(
        "/api/v1/avatars/me",
        files={"file": ("photo.jpg", _image_bytes(fmt="JPEG"), "image/jpeg")},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["file_name"].startswith(f"{USER_ID}_")
    assert body["file_name"].endswith(".jpg")
    assert body["avatar_url"].endswith(body["file_name"])
    assert list(bucket.files) == [body["file_name"]]
    assert bucket.uploads[0]["options"]["cache-control"] == "3600"
    assert fake_db.tables["profiles"][0]["avatar_url"] == body["avatar_url"]
    stored = Image.open(io.BytesIO(bucket.files[body["file_name"]]))
    assert stored.size == (200, 200)


def test_upload_avatar_rejects_wrong_type(client, fake_db):
    fake_db.seed("profiles", make_profile())
    resp = client.post("/api/v1/avatars/me", files={"file": ("anim.gif", b"GIF89a", "image/gif")})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Only JPEG and PNG images are allowed"


def test_upload_avatar_maps_storage_errors(client, fake_db):
    fake_db.seed("profiles", make_profile())
    fake_db.storage.from_(settings.avatar_bucket).upload_error = Exception("Bucket not found")
    resp = client.post("/api/v1/avatars/me", files={"file": ("p.png", _image_bytes(), "image/png")})
    assert resp.status_code == 502
    assert resp.json()["detail"] == "Storage is not configured. Please contact support."


def test_delete_avatar_endpoint(client, fake_db):
    fake_db.seed("profiles", make_profile(avatar_url="https://fake/x.jpg"))
    fake_db.storage.from_(settings.avatar_bucket).files = {f"{USER_ID}_1.jpg": b"old"}
    resp = client.delete("/api/v1/avatars/me")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Profile picture removed", "removed_files": 1}
    assert fake_db.tables["profiles"][0]["avatar_url"] is None


def test_validate_image_file_accepts_ordinary_photo_names():
    assert validate_image_file("My Photo.png", "image/png", 10) is None
    assert validate_image_file("Screen Shot 2024-01-01 at 10.00.00.png", "image/png", 10) is None
    assert validate_image_file("avatar (1).jpg", "image/jpeg", 10) is None


def test_resize_rejects_decompression_bomb(monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(HTTPException) as exc:
        resize_image_to_square(_image_bytes((30, 30)), 20, "png")
    assert exc.value.status_code == 400
    assert exc.value.detail == "Invalid image file"


def test_upload_avatar_with_spaces_in_name(client, fake_db):
    fake_db.seed("profiles", make_profile())
    resp = client.post("/api/v1/avatars/me", files={"file": ("My Photo.png", _image_bytes(), "image/png")})
    assert resp.status_code == 201
    assert resp.json()["file_name"].endswith(".png")


def test_upload_avatar_rejects_oversized_body(client, fake_db, monkeypatch):
    fake_db.seed("profiles", make_profile())
    monkeypatch.setattr(settings, "avatar_max_bytes", 1000)
    resp = client.post("/api/v1/avatars/me", files={"file": ("big.png", b"\x89PNG" + b"0" * 5000, "image/png")})
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("File size must be less than")
    assert fake_db.storage.from_(settings.avatar_bucket).uploads == []
