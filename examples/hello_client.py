import asyncio

from hello_grpc import HelloClient


async def main():
    async with HelloClient("127.0.0.1:50051", proto="hello.proto") as client:
        reply = await client.say_hello("HelloClient")
        print("SayHello Response:", reply.message)

        count = 0
        async for reply in client.stream_hello():
            print("StreamHello Response:", reply.message)
            count += 1
            if count == 5:
                break


if __name__ == "__main__":
    asyncio.run(main())
