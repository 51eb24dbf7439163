from threadstore.clients.disc import run

run()
