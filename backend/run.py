import click

from primechain import create_app, socketio

app = create_app()


@click.command()
@click.option('--host', default='127.0.0.1', show_default=True)
@click.option('--port', default=3000, show_default=True, type=int)
@click.option('--debug/--no-debug', default=True, show_default=True)
def serve(host, port, debug):
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, host=host, port=port, debug=debug)


if __name__ == '__main__':
    serve()
