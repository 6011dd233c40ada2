async def handler(event, context):
    raise Exception("An Error")
