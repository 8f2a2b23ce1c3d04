"""常量定义：集中维护状态码与上传协议相关的固定取值。"""

HTTP_STATUS_OK = 200
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_INTERNAL_SERVER_ERROR = 500

# 与 ASP.NET FormOptions.MultipartBoundaryLengthLimit 的默认值保持一致
DEFAULT_BOUNDARY_LENGTH_LIMIT = 70

BYTES_PER_MEGABYTE = 1024 * 1024

# 上传表单中的字段名
FILE_FIELD = "file"
USER_ID_FIELD = "userId"
COMMENT_FIELD = "comment"
IS_PRIMARY_FIELD = "isPrimary"

# 校验失败原因（对外暴露在错误响应的 data.reason 中）
REASON_EMPTY = "empty"
REASON_TOO_LARGE = "too large"
REASON_SIGNATURE_MISMATCH = "signature mismatch"
REASON_EXTENSION_NOT_PERMITTED = "extension not permitted"
REASON_NO_FILE = "no file uploaded"
REASON_MALFORMED = "malformed request"

# 下载未命中原因
NOT_FOUND_EXTENSION = "extension"
NOT_FOUND_FILE = "file"
