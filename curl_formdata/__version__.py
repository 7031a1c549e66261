__title__ = "curl_formdata"
__description__ = "Streaming multipart/form-data requests on top of curl_cffi"
__version__ = "0.1.0"
