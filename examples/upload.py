"""
Files are passed by path and read in the background, the parts are still sent in
the order they were added.

Use ``fields``/``files`` for the simple cases, or build the request part by part
when you need full control over the headers.
"""

from curl_formdata import Part, requests

r = requests.post(
    "https://httpbin.org/post",
    fields={"foo": "bar"},
    files={"image": "./image.png"},  # field name and filename seen by the server
)
print(r.json())

with open("./image.jpg", "rb") as file:
    data = file.read()

# in-memory content with custom headers, several files under the same field name
parts = [
    Part().set_name("image").set_filename("image.jpg").write(data),
    Part().set_name("image").set_filename("another.txt").write("bar"),
]
r = requests.post("https://httpbin.org/post", parts=parts)
print(r.json())
