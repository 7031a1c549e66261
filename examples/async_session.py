import asyncio

from curl_formdata import AttachmentError
from curl_formdata.requests import AsyncSession


async def main():
    async with AsyncSession(headers={"X-Client": "curl-formdata"}) as s:
        r = await s.post(
            "https://httpbin.org/post",
            fields={"user[name]": "tobi"},
            files=["./user.json"],
        )
        print(r.json())

        req = s.build("POST", "https://httpbin.org/post")
        req.field("name", "Tobi").attach("./missing.html", "document")
        req.on_error(lambda e: print("upload failed:", e))
        try:
            await req.end()
        except AttachmentError as e:
            print("nothing was sent for", e.path)


if __name__ == "__main__":
    asyncio.run(main())
