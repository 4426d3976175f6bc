from aiohttp import web
from aiohttp.web import middleware

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': '*',
    'Access-Control-Allow-Headers': '*',
}


@middleware
async def cors(request: web.Request, handler):
    """Allow requests from any origin, answer preflight requests directly"""
    if (request.method == 'OPTIONS' and
            'Access-Control-Request-Method' in request.headers):
        return web.Response(headers=CORS_HEADERS)
    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response
