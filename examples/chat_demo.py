"""Minimal demonstration of a knowledge-base chat session."""

import asyncio

from kb_chat import create_session


async def main() -> None:
    session = create_session()
    session.new_conversation()
    question = "What documents are in the knowledge base?"
    reply = await session.send(question)
    print("User:", question)
    print("Agent:", reply.content)


if __name__ == "__main__":
    asyncio.run(main())
