# Supabase table: messages (documented in app.modules.conversations.models)
# Storage bucket: message-attachments, objects at {userId}/{timestamp}.{ext}

MESSAGE_TYPE_TEXT = "text"
MESSAGE_TYPE_FORM = "form"
MESSAGE_TYPE_FORM_RESPONSE = "form_response"

ATTACHMENT_IMAGE = "image"
ATTACHMENT_FILE = "file"

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}

# extension -> icon name shown on file chips
FILE_ICONS = {
    "mp4": "video",
    "avi": "video",
    "mov": "video",
    "mp3": "audio",
    "wav": "audio",
    "ogg": "audio",
    "pdf": "document",
}
